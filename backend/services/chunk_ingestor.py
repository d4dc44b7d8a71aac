"""Offline ingestion: PDF text extraction, chunking, embedding and upload."""
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Union

from models.chunk import Chunk
from services.chunking_engine import ChunkingEngine
from services.document_loader import DocumentLoader
from services.embedding_client import EmbeddingClient
from services.errors import ConfigurationError
from services.vector_store import VectorStore

logger = logging.getLogger(__name__)

TEXT_SUFFIX = ".txt"
PARTIAL_SUFFIX = ".part"


@dataclass
class ExtractionSummary:
    extracted: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)


@dataclass
class UploadSummary:
    files: int = 0
    uploaded: int = 0
    failed: int = 0


def text_output_path(pdf_path: Path, output_dir: Path) -> Path:
    """``paper1.pdf`` -> ``<output_dir>/paper1.txt``."""
    return output_dir / f"{pdf_path.stem}{TEXT_SUFFIX}"


def source_filename(text_path: Path) -> str:
    """Name of the PDF a text file was extracted from (stored with every chunk)."""
    return f"{text_path.stem}.pdf"


def write_atomically(path: Path, text: str) -> None:
    """
    Write ``text`` to ``path`` so the file either holds all of it or does not exist.

    The text goes to a ``.part`` sibling that is renamed into place once fully
    written; a failed write removes the partial file.
    """
    partial = path.with_name(f"{path.name}{PARTIAL_SUFFIX}")
    try:
        partial.write_text(text, encoding="utf-8")
        partial.replace(path)
    except BaseException:
        partial.unlink(missing_ok=True)
        raise


def list_text_files(output_dir: Union[str, Path]) -> List[Path]:
    output_dir = Path(output_dir)
    if not output_dir.is_dir():
        logger.error(f"Text output directory not found: {output_dir}")
        return []
    return sorted(
        path for path in output_dir.iterdir()
        if path.is_file() and path.suffix.lower() == TEXT_SUFFIX
    )


def chunk_text_file(chunker: ChunkingEngine, text_path: Path) -> List[Chunk]:
    """Chunk a previously extracted text file, labelling chunks with the source PDF name."""
    text = text_path.read_text(encoding="utf-8")
    return chunker.chunk_document(source_filename(text_path), text)


def chunk_directory(chunker: ChunkingEngine, output_dir: Union[str, Path]) -> Dict[str, List[Chunk]]:
    """Chunk every text file in ``output_dir``, keyed by source PDF name."""
    return {
        source_filename(path): chunk_text_file(chunker, path)
        for path in list_text_files(output_dir)
    }


class ChunkIngestor:
    """Runs the offline half of the RAG pipeline."""

    def __init__(
        self,
        loader: DocumentLoader,
        chunker: ChunkingEngine,
        embedding_client: Optional[EmbeddingClient] = None,
        vector_store: Optional[VectorStore] = None,
    ):
        """
        Initialize the ingestor.

        Extraction only needs the loader; uploading also needs the
        embedding client and vector store.
        """
        self.loader = loader
        self.chunker = chunker
        self.embedding_client = embedding_client
        self.vector_store = vector_store

    def extract_directory(
        self, pdf_dir: Union[str, Path], output_dir: Union[str, Path]
    ) -> ExtractionSummary:
        """
        Extract every PDF in ``pdf_dir`` to ``<output_dir>/<stem>.txt``.

        PDFs whose text file already exists are skipped, so the step can be
        re-run after adding new papers. A PDF that fails to parse is logged
        and does not stop the run.

        Args:
            pdf_dir: Directory holding the source PDFs
            output_dir: Directory receiving the text files (created if missing)

        Returns:
            ExtractionSummary listing extracted, skipped and failed PDFs
        """
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        summary = ExtractionSummary()

        for pdf_path in self.loader.list_pdfs(pdf_dir):
            out_path = text_output_path(pdf_path, output_dir)
            if out_path.exists():
                logger.info(f"Skipping (already processed): {pdf_path.name}")
                summary.skipped.append(pdf_path.name)
                continue

            logger.info(f"Extracting: {pdf_path.name}")
            try:
                write_atomically(out_path, self.loader.extract_text(pdf_path))
            except Exception as e:
                logger.error(f"Failed to process {pdf_path.name}: {e}", exc_info=True)
                summary.failed.append(pdf_path.name)
                continue
            logger.info(f"Saved: {out_path}")
            summary.extracted.append(pdf_path.name)

        logger.info(
            f"Extraction finished: {len(summary.extracted)} extracted, "
            f"{len(summary.skipped)} skipped, {len(summary.failed)} failed"
        )
        return summary

    def upload_chunk(self, chunk: Chunk) -> None:
        """Embed a single chunk and upsert it into the vector store."""
        embedding = self.embedding_client.embed(chunk.chunk_text)
        self.vector_store.upsert_chunk(
            Chunk(
                filename=chunk.filename,
                chunk_index=chunk.chunk_index,
                chunk_text=chunk.chunk_text,
                embedding=embedding,
            )
        )

    def upload_chunks(self, chunks: List[Chunk]) -> UploadSummary:
        """Upload chunks one by one; a failed chunk is logged and skipped."""
        if self.embedding_client is None or self.vector_store is None:
            raise ConfigurationError("Uploading chunks requires an embedding client and a vector store")
        summary = UploadSummary()
        for chunk in chunks:
            try:
                self.upload_chunk(chunk)
            except Exception as e:
                logger.error(f"Failed to process chunk {chunk.chunk_index} of {chunk.filename}: {e}")
                summary.failed += 1
                continue
            logger.info(f"Uploaded: {chunk.filename} [chunk {chunk.chunk_index}]")
            summary.uploaded += 1
        return summary

    def upload_directory(self, output_dir: Union[str, Path]) -> UploadSummary:
        """
        Chunk, embed and upload every extracted text file.

        Args:
            output_dir: Directory holding the ``.txt`` files from extraction

        Returns:
            UploadSummary with per-chunk success and failure counts
        """
        total = UploadSummary()
        for filename, chunks in chunk_directory(self.chunker, output_dir).items():
            logger.info(f"Processing {filename}: {len(chunks)} chunks")
            summary = self.upload_chunks(chunks)
            total.files += 1
            total.uploaded += summary.uploaded
            total.failed += summary.failed

        logger.info(
            f"Upload finished: {total.uploaded} chunks uploaded, {total.failed} failed "
            f"across {total.files} files"
        )
        return total
