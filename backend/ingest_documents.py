"""
Document ingestion CLI for the VO2Max assistant.

Subcommands:
    extract   Extract text from pdfs/ into pdfs-output/<stem>.txt (skips done files)
    upload    Chunk, embed and upsert every extracted text file
    verify    Report chunks missing from the vector store and offer to re-upload them

Usage:
    python ingest_documents.py extract
    python ingest_documents.py upload
    python ingest_documents.py verify [--yes]
"""
import argparse
import logging
import sys
from pathlib import Path
from typing import Callable, List, Optional

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent))

from config import LOG_FORMAT, LOG_LEVEL, PDF_DIR, PDF_OUTPUT_DIR
from logger import setup_logging
from services.chunk_ingestor import ChunkIngestor
from services.chunk_verifier import ChunkVerifier
from services.chunking_engine import ChunkingEngine
from services.document_loader import DocumentLoader
from services.embedding_client import EmbeddingClient
from services.errors import AppError
from services.vector_store import create_vector_store

logger = logging.getLogger(__name__)


def build_ingestor(pdf_dir: Path, with_upload: bool = True) -> ChunkIngestor:
    """
    Wire up the ingestion services.

    Raises:
        ConfigurationError: If upload services are requested without credentials
    """
    loader = DocumentLoader(docs_directory=pdf_dir)
    chunker = ChunkingEngine()
    if not with_upload:
        return ChunkIngestor(loader, chunker)
    return ChunkIngestor(loader, chunker, EmbeddingClient(), create_vector_store())


def run_extract(args: argparse.Namespace) -> int:
    ingestor = build_ingestor(args.pdf_dir, with_upload=False)
    summary = ingestor.extract_directory(args.pdf_dir, args.output_dir)
    return 1 if summary.failed else 0


def run_upload(args: argparse.Namespace) -> int:
    ingestor = build_ingestor(args.pdf_dir)
    summary = ingestor.upload_directory(args.output_dir)
    logger.info(f"Chunks in vector store: {ingestor.vector_store.count()}")
    return 1 if summary.failed else 0


def run_verify(args: argparse.Namespace, confirm: Callable[[str], str] = input) -> int:
    verifier = ChunkVerifier(build_ingestor(args.pdf_dir))
    report = verifier.find_missing(args.output_dir)

    if report.complete:
        print("All local chunks are uploaded to Supabase!")
    else:
        print("Missing chunks:")
        for chunk in report.missing:
            print(f"{chunk.filename} [chunk {chunk.chunk_index}]")
        print(f"Total missing: {len(report.missing)}")
    print(f"Local chunks: {report.local_count}, Uploaded: {report.stored_count}")

    if report.complete:
        return 0

    if not args.yes:
        answer = confirm("Do you want to re-upload missing chunks? (y/N): ")
        if answer.strip().lower() != "y":
            print("No chunks were re-uploaded.")
            return 1

    summary = verifier.reupload(report.missing)
    print(f"Re-upload complete: {summary.uploaded} uploaded, {summary.failed} failed.")
    return 1 if summary.failed else 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vo2max-ingest",
        description="Ingest research PDFs into the VO2Max assistant vector store.",
    )
    parser.add_argument("--pdf-dir", type=Path, default=PDF_DIR, help="Directory of source PDFs")
    parser.add_argument(
        "--output-dir", type=Path, default=PDF_OUTPUT_DIR, help="Directory of extracted text files"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("extract", help="Extract text from PDFs").set_defaults(handler=run_extract)
    subparsers.add_parser("upload", help="Chunk, embed and upload text").set_defaults(handler=run_upload)

    verify = subparsers.add_parser("verify", help="Find and re-upload missing chunks")
    verify.add_argument("--yes", action="store_true", help="Re-upload without asking")
    verify.set_defaults(handler=run_verify)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the ``vo2max-ingest`` command."""
    setup_logging(LOG_LEVEL, LOG_FORMAT)
    args = build_parser().parse_args(argv)
    try:
        return args.handler(args)
    except KeyboardInterrupt:
        logger.warning("Ingestion interrupted by user")
        return 1
    except AppError as e:
        logger.error(f"Ingestion failed: {e.message}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
