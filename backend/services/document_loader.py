"""Document loading service for PDF text extraction."""
import logging
from pathlib import Path
from typing import List, Optional, Union

import fitz  # PyMuPDF

from models.document import Document, Page

logger = logging.getLogger(__name__)

# Index of the word text in PyMuPDF's ("x0", "y0", "x1", "y1", "word", ...) tuples
_WORD_TEXT = 4


class DocumentLoader:
    """Loads research PDFs and extracts their text page by page."""

    def __init__(self, docs_directory: Union[str, Path] = "pdfs"):
        """
        Initialize DocumentLoader.

        Args:
            docs_directory: Path to directory containing PDF files
        """
        self.docs_directory = Path(docs_directory)

    def list_pdfs(self, directory: Optional[Union[str, Path]] = None) -> List[Path]:
        """Return the PDFs in ``directory`` (default: the documents directory), sorted by name."""
        directory = Path(directory) if directory is not None else self.docs_directory
        if not directory.is_dir():
            logger.error(f"Documents directory not found: {directory}")
            return []
        return sorted(
            path for path in directory.iterdir()
            if path.is_file() and path.suffix.lower() == ".pdf"
        )

    def load_documents(self) -> List[Document]:
        """
        Load all PDF files from the documents directory.

        Corrupted files are logged and skipped.

        Returns:
            List of Document objects with per-page text
        """
        documents = []
        pdf_files = self.list_pdfs()
        logger.info(f"Found {len(pdf_files)} PDF files in {self.docs_directory}")

        for filepath in pdf_files:
            try:
                documents.append(self.load_pdf(filepath))
            except Exception as e:
                logger.error(f"Error loading {filepath.name}: {str(e)}", exc_info=True)
                continue

        logger.info(f"Successfully loaded {len(documents)} documents")
        return documents

    def load_pdf(self, filepath: Union[str, Path]) -> Document:
        """
        Load a single PDF file and extract text page-by-page.

        Each page's text items are joined with single spaces.

        Args:
            filepath: Full path to PDF file

        Returns:
            Document object with extracted text
        """
        filepath = Path(filepath)
        pages = []
        with fitz.open(filepath) as pdf_document:
            for page_num, page in enumerate(pdf_document):
                words = [word[_WORD_TEXT] for word in page.get_text("words")]
                pages.append(Page(
                    page_number=page_num + 1,  # 1-indexed
                    text=" ".join(words),
                    word_count=len(words),
                ))

        document = Document(filename=filepath.name, pages=pages)
        logger.debug(f"Extracted {document.word_count} words from {document.total_pages} pages of {filepath.name}")
        return document

    def extract_text(self, filepath: Union[str, Path]) -> str:
        """Extract a PDF's full text, each page followed by a newline."""
        return self.load_pdf(filepath).text
