"""Supabase client construction."""
import logging
from typing import Optional

from supabase import Client, create_client

from config import SUPABASE_KEY, SUPABASE_URL
from services.errors import ConfigurationError

logger = logging.getLogger(__name__)


def create_supabase_client(url: Optional[str] = None, key: Optional[str] = None) -> Client:
    """
    Create a Supabase client from explicit credentials or the environment.

    Raises:
        ConfigurationError: If the URL or service key is missing
    """
    url = url or SUPABASE_URL
    key = key or SUPABASE_KEY
    if not url or not key:
        logger.error(
            f"Supabase credentials incomplete: SUPABASE_URL={'set' if url else 'missing'}, "
            f"SUPABASE_SERVICE_ROLE_KEY={'set' if key else 'missing'}"
        )
        raise ConfigurationError(
            "SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY environment variables are required"
        )
    return create_client(url, key)
