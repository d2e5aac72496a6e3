"""
Markdown Loader
===============
Discovers and reads the Markdown articles of a corpus and scans each one
into a Document. Paths are stored relative to the corpus root, POSIX style.
"""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path
from typing import Callable, Optional

from .models import Document
from .state_machine import MarkdownScanner

logger = logging.getLogger(__name__)


class CorpusError(RuntimeError):
    """A corpus file exists but cannot be read as Markdown text."""


class MarkdownLoader:
    """
    Handles corpus discovery and file reading.

    Text is decoded as UTF-8 (a leading BOM is dropped) and line endings
    are normalised to LF before scanning.
    """

    def __init__(self, content_dir: str, pattern: str = "*.md"):
        self.content_dir = Path(content_dir)
        self.pattern = pattern

    def discover(self) -> list[Path]:
        """Every Markdown file under the corpus root, sorted by relative path."""
        if not self.content_dir.is_dir():
            raise FileNotFoundError(
                f"Content directory not found: {self.content_dir}"
            )
        files = [p for p in self.content_dir.rglob(self.pattern) if p.is_file()]
        return sorted(files, key=lambda p: p.relative_to(self.content_dir).as_posix())

    def load(self, path: Path) -> Document:
        """Read and scan one file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Markdown file not found: {path}")

        raw = path.read_bytes()
        try:
            text = raw.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise CorpusError(f"{path} is not valid UTF-8: {e}") from e
        text = text.replace("\r\n", "\n").replace("\r", "\n")

        relative = self._relative(path)
        document = MarkdownScanner().scan(text, path=relative)
        document.content_hash = hashlib.sha256(raw).hexdigest()
        document.size_bytes = len(raw)

        logger.debug(
            f"Loaded {relative}: {len(document.headings)} headings, "
            f"{len(document.links)} links, "
            f"{len(document.code_blocks)} code blocks"
        )
        return document

    def load_corpus(
        self,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> list[Document]:
        """
        Load all documents of the corpus.

        Args:
            progress_callback: Optional callable(current, total).

        Returns:
            Documents ordered by relative path.
        """
        files = self.discover()
        logger.info(f"Loading {len(files)} Markdown files from {self.content_dir}")

        documents = []
        for index, path in enumerate(files, start=1):
            documents.append(self.load(path))
            if progress_callback:
                progress_callback(index, len(files))
        return documents

    def _relative(self, path: Path) -> str:
        try:
            return path.resolve().relative_to(
                self.content_dir.resolve()
            ).as_posix()
        except ValueError:
            return path.name
