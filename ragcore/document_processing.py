"""Document loading and word-window chunking."""

from pathlib import Path

import pypdf

from .config import config

logger = config.get_logger(__name__)


class DocumentLoader:
    """Handles loading of PDF and TXT documents."""

    @staticmethod
    def load_pdf(file_path: Path) -> str:
        """Load text content from a PDF file.

        Returns:
            The extracted text of every page, separated by newlines.
        """
        try:
            with file_path.open("rb") as file:
                pdf_reader = pypdf.PdfReader(file)
                pages = [page.extract_text() or "" for page in pdf_reader.pages]
        except Exception:
            logger.exception("Error loading PDF %s", file_path)
            raise
        else:
            return "\n".join(pages)

    @staticmethod
    def load_txt(file_path: Path) -> str:
        """Load text content from a TXT file.

        Returns:
            The extracted text content from the TXT file as a string.
        """
        try:
            with file_path.open(encoding="utf-8") as file:
                text = file.read()
            logger.info("Successfully loaded TXT file %s", file_path.name)
        except Exception:
            logger.exception("Error loading TXT %s", file_path)
            raise
        else:
            return text

    @classmethod
    def load_document(cls, file_path: Path) -> str:
        """Load document based on file extension.

        Args:
            file_path: Path to the document file.

        Returns:
            The text content of the document as a string.

        Raises:
            ValueError: If the file type is not supported.
        """
        file_ext = file_path.suffix.lower()
        if file_ext == ".pdf":
            return cls.load_pdf(file_path)
        if file_ext in {".txt", ".md"}:
            return cls.load_txt(file_path)
        msg = f"Unsupported file type: {file_ext}"
        raise ValueError(msg)


class WordChunker:
    """Splits text into overlapping windows of whitespace-separated words.

    Word counts stand in for tokens. Consecutive windows share ``overlap``
    words, so the window start advances by ``chunk_size - overlap``.
    """

    def __init__(self, chunk_size: int = 500, overlap: int = 50) -> None:
        """Initialize the WordChunker with window size and overlap.

        Args:
            chunk_size: Number of words per window.
            overlap: Number of words shared by consecutive windows.

        Raises:
            ValueError: If the sizes cannot produce a forward-moving window.
        """
        if chunk_size < 1:
            msg = "chunk_size must be at least 1"
            raise ValueError(msg)
        if overlap < 0 or overlap >= chunk_size:
            msg = "overlap must be in [0, chunk_size)"
            raise ValueError(msg)
        self.chunk_size = chunk_size
        self.overlap = overlap

    @property
    def step(self) -> int:
        return self.chunk_size - self.overlap

    @staticmethod
    def split_words(text: str) -> list[str]:
        return text.split()

    def windows(self, text: str) -> list[str]:
        """Return the text of every window, in document order.

        The last window is the first one that reaches the end of the word
        sequence; empty text has no windows.
        """
        words = self.split_words(text)
        windows: list[str] = []

        for start in range(0, len(words), self.step):
            end = min(start + self.chunk_size, len(words))
            windows.append(" ".join(words[start:end]))
            if end >= len(words):
                break

        return windows
