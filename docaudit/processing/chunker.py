"""Heading-aware chunking of page main content.

This module provides the PageChunker class, which approximates how a
retrieval system would split a documentation page: main content is divided at
heading text, and each section is packed sentence by sentence into chunks of
roughly the target size.

Examples:
    Basic usage with defaults (1500 character target):

        chunker = PageChunker()
        chunks = chunker.chunk_all(pages)

    Custom target size:

        chunker = PageChunker(chunk_size=1000)
        chunks = chunker.chunk_page(page)
"""

import math
import re
from typing import TypedDict

from docaudit.core.models import ContentChunk, ExtractedPage

DEFAULT_CHUNK_SIZE = 1500
MIN_CHUNK_SIZE = 100
MAX_CHUNK_SIZE = 3000

# Chunk health thresholds in estimated tokens
SHORT_CHUNK_TOKENS = 50
LONG_CHUNK_TOKENS = 800

# A sentence runs up to and including its terminal punctuation and trailing
# whitespace; text after the last terminator forms a final sentence.
SENTENCE_PATTERN = re.compile(r"[^.!?]*[.!?]+\s*|[^.!?]+$")


class ChunkStats(TypedDict):
    """Summary of chunk token estimates.

    Attributes:
        total_chunks: Number of chunks
        avg_tokens: Mean token estimate, rounded
        min_tokens: Smallest token estimate
        max_tokens: Largest token estimate
        too_short: Chunks under SHORT_CHUNK_TOKENS
        too_long: Chunks over LONG_CHUNK_TOKENS
    """

    total_chunks: int
    avg_tokens: int
    min_tokens: int
    max_tokens: int
    too_short: int
    too_long: int


def estimate_tokens(text: str) -> int:
    """Estimate tokens as one per four characters, rounded up."""
    return math.ceil(len(text) / 4)


def get_chunk_stats(chunks: list[ContentChunk]) -> ChunkStats:
    """Summarize token estimates across chunks."""
    if not chunks:
        return ChunkStats(
            total_chunks=0,
            avg_tokens=0,
            min_tokens=0,
            max_tokens=0,
            too_short=0,
            too_long=0,
        )

    tokens = [chunk.token_estimate for chunk in chunks]
    return ChunkStats(
        total_chunks=len(chunks),
        avg_tokens=math.floor(sum(tokens) / len(tokens) + 0.5),
        min_tokens=min(tokens),
        max_tokens=max(tokens),
        too_short=sum(1 for t in tokens if t < SHORT_CHUNK_TOKENS),
        too_long=sum(1 for t in tokens if t > LONG_CHUNK_TOKENS),
    )


class PageChunker:
    """Chunks extracted pages by heading, then by sentence-bounded size.

    Attributes:
        chunk_size: Target chunk size in characters (default 1500)

    Notes:
        - Chunks are never cut mid-sentence; a single sentence longer than the
          target becomes its own oversized chunk
        - Fragments shorter than MIN_CHUNK_SIZE are dropped, never emitted
        - Content before the first heading is attributed to the page title
    """

    def __init__(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        """Initialize the page chunker.

        Args:
            chunk_size: Target chunk size in characters, between
                MIN_CHUNK_SIZE and MAX_CHUNK_SIZE

        Raises:
            ValueError: If chunk_size is outside [MIN_CHUNK_SIZE, MAX_CHUNK_SIZE]
        """
        if not MIN_CHUNK_SIZE <= chunk_size <= MAX_CHUNK_SIZE:
            raise ValueError(
                f"chunk_size must be between {MIN_CHUNK_SIZE} and {MAX_CHUNK_SIZE}"
            )
        self.chunk_size = chunk_size

    def chunk_all(self, pages: list[ExtractedPage]) -> list[ContentChunk]:
        """Chunk every page that was fetched without error, in page order."""
        chunks: list[ContentChunk] = []
        for page in pages:
            if page.error is None:
                chunks.extend(self.chunk_page(page))
        return chunks

    def chunk_page(self, page: ExtractedPage) -> list[ContentChunk]:
        """Split one page's main content into chunks.

        Args:
            page: Extracted page

        Returns:
            Chunks in content order, each tagged with its nearest heading (or
            the page title before the first heading). Empty when the content
            is shorter than MIN_CHUNK_SIZE.

        Examples:
            Page without headings falls back to size-based chunking:

                chunks = chunker.chunk_page(page)
                # chunks[0].heading_context == page.title
        """
        content = page.main_content
        if len(content) < MIN_CHUNK_SIZE:
            return []

        sections = self._split_by_headings(page)
        if sections is None:
            return self._chunk_by_size(content, page.url, page.title)

        chunks: list[ContentChunk] = []
        for heading, text in sections:
            if len(text.strip()) >= MIN_CHUNK_SIZE:
                chunks.extend(self._chunk_by_size(text, page.url, heading))
        return chunks

    def _split_by_headings(
        self, page: ExtractedPage
    ) -> list[tuple[str | None, str]] | None:
        """Split main content at occurrences of heading text.

        Returns:
            List of (heading context, section text), or None when the page has
            no headings or none of them occur in the content
        """
        if not page.headings:
            return None

        canonical = {}
        for heading in page.headings:
            canonical.setdefault(heading.text.lower(), heading.text)

        # Longest first so a heading that contains another heading wins
        texts = sorted(canonical.values(), key=len, reverse=True)
        pattern = re.compile("|".join(re.escape(text) for text in texts), re.IGNORECASE)

        content = page.main_content
        sections: list[tuple[str | None, str]] = []
        current_heading = page.title
        position = 0
        for match in pattern.finditer(content):
            sections.append((current_heading, content[position : match.start()]))
            current_heading = canonical.get(match.group(0).lower(), match.group(0))
            position = match.end()

        if not sections:
            return None

        sections.append((current_heading, content[position:]))
        return sections

    def _chunk_by_size(
        self, text: str, page_url: str, heading_context: str | None
    ) -> list[ContentChunk]:
        text = text.strip()
        if len(text) <= self.chunk_size:
            if len(text) >= MIN_CHUNK_SIZE:
                return [self._make_chunk(text, page_url, heading_context)]
            return []

        chunks: list[ContentChunk] = []
        current = ""
        for sentence in SENTENCE_PATTERN.findall(text):
            # Only close a chunk once it is big enough to stand on its own
            if (
                len(current) + len(sentence) > self.chunk_size
                and len(current.strip()) >= MIN_CHUNK_SIZE
            ):
                chunks.append(self._make_chunk(current, page_url, heading_context))
                current = sentence
            else:
                current += sentence

        if len(current.strip()) >= MIN_CHUNK_SIZE:
            chunks.append(self._make_chunk(current, page_url, heading_context))

        return chunks

    @staticmethod
    def _make_chunk(
        text: str, page_url: str, heading_context: str | None
    ) -> ContentChunk:
        content = text.strip()
        return ContentChunk(
            page_url=page_url,
            content=content,
            token_estimate=estimate_tokens(content),
            heading_context=heading_context,
        )
