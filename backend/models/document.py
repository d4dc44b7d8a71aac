"""Research paper models produced by PDF extraction."""
from dataclasses import dataclass, field
from typing import List


@dataclass(frozen=True)
class Page:
    """Text of one PDF page, its words joined by single spaces."""
    page_number: int  # 1-indexed
    text: str
    word_count: int = 0


@dataclass(frozen=True)
class Document:
    """A research PDF as extracted text, before chunking."""
    filename: str  # e.g. "paper1.pdf"
    pages: List[Page] = field(default_factory=list)

    @property
    def total_pages(self) -> int:
        return len(self.pages)

    @property
    def word_count(self) -> int:
        return sum(page.word_count for page in self.pages)

    @property
    def text(self) -> str:
        """Extraction output: every page's text followed by a newline."""
        return "".join(f"{page.text}\n" for page in self.pages)
