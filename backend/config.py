"""Configuration management for the VO2Max assistant backend."""
import os
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

PROJECT_ROOT = Path(__file__).resolve().parent.parent

# API Keys
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY") or os.getenv("SUPABASE_KEY")

# Server Configuration
PORT = int(os.getenv("PORT", "8000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("LOG_FORMAT", "json")

# CORS Configuration
CORS_ORIGINS = os.getenv(
    "CORS_ORIGINS",
    "http://localhost:3000,http://localhost:8080"
).split(",")

# Model Configuration
OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")
EMBEDDING_MODEL = os.getenv("OPENAI_EMBEDDING_MODEL", "text-embedding-ada-002")
EMBEDDING_DIMENSIONS = int(os.getenv("EMBEDDING_DIMENSIONS", "1536"))
CHAT_MODEL = os.getenv("OPENAI_CHAT_MODEL", "gpt-4o")
HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT", "60"))

# Storage Configuration
VECTOR_STORE_BACKEND = os.getenv("VECTOR_STORE_BACKEND", "supabase")
CHUNKS_TABLE = os.getenv("CHUNKS_TABLE", "pdf_chunks")
MATCH_CHUNKS_RPC = os.getenv("MATCH_CHUNKS_RPC", "match_pdf_chunks")
SETTINGS_TABLE = os.getenv("SETTINGS_TABLE", "rag_settings")
VERIFICATION_STORE_BACKEND = os.getenv("VERIFICATION_STORE_BACKEND", "supabase")
VERIFICATION_CODES_TABLE = os.getenv("VERIFICATION_CODES_TABLE", "verification_codes")
METRICS_STORE_BACKEND = os.getenv("METRICS_STORE_BACKEND", "supabase")

# Ingestion Configuration
PDF_DIR = Path(os.getenv("PDF_DIR", str(PROJECT_ROOT / "pdfs")))
PDF_OUTPUT_DIR = Path(os.getenv("PDF_OUTPUT_DIR", str(PROJECT_ROOT / "pdfs-output")))
CHUNK_SIZE = 800  # characters

# Retrieval Configuration
TOP_K = 5

# Verification Codes
VERIFICATION_CODE_TTL_SECONDS = 10 * 60
VERIFICATION_MAX_ATTEMPTS = 3
