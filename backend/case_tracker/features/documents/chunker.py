"""
Documents feature: paragraph-aligned text chunking with overlap.

Character-based so chunk sizes do not depend on any tokenizer. Every chunk is
an exact slice of the input (``content == text[start_char:end_char]``), so the
original text can be rebuilt by dropping the overlap between neighbours.
"""

import re
from bisect import bisect_left, bisect_right
from dataclasses import dataclass

from case_tracker.core.exceptions import ValidationError

# A blank line (possibly with spaces/tabs) separates paragraphs; the boundary is
# the first character of the next paragraph.
PARAGRAPH_BREAK = re.compile(r"\n[ \t]*\n\s*")

# Page separators emitted by extractors or present in plain-text exports.
PAGE_BREAK = re.compile(
    r"\n\s*-{3,}"
    r"|\n\s*={3,}"
    r"|\n\s*\[Page\s+\d+\]"
    r"|\n\s*Page\s+\d+\s*\n"
)


@dataclass(frozen=True)
class TextChunk:
    """A span of extracted text with its position in the source."""

    chunk_index: int
    content: str
    start_char: int
    end_char: int
    page_number: int

    def __len__(self) -> int:
        return self.end_char - self.start_char


def chunk_text(
    text: str,
    max_size: int = 1000,
    overlap: int = 200,
    keep_oversized_paragraphs: bool = False,
) -> list[TextChunk]:
    """Split text into overlapping chunks aligned to paragraph breaks.

    Args:
        text: Extracted document text.
        max_size: Maximum chunk length in characters.
        overlap: Characters shared by consecutive chunks (must be < max_size).
        keep_oversized_paragraphs: Emit a paragraph longer than ``max_size``
            whole instead of windowing it.

    Returns:
        Ordered chunks. Empty input gives an empty list.

    Raises:
        ValidationError: If the size/overlap pair is unusable.
    """
    if max_size <= 0:
        raise ValidationError(f"max_size must be positive, got {max_size}")
    if overlap < 0 or overlap >= max_size:
        raise ValidationError(
            f"Overlap ({overlap}) must be between 0 and chunk size ({max_size})"
        )
    if not text:
        return []

    length = len(text)
    boundaries = [m.end() for m in PARAGRAPH_BREAK.finditer(text) if m.end() < length]
    page_breaks = [m.start() for m in PAGE_BREAK.finditer(text)]

    spans: list[tuple[int, int]] = []
    start = 0
    while True:
        limit = start + max_size
        if limit >= length:
            spans.append((start, length))
            break

        end = _last_boundary(boundaries, start + overlap, limit)
        if end is None:
            if keep_oversized_paragraphs:
                paragraph_start = _last_boundary(boundaries, start, limit)
                if paragraph_start is None:
                    end = _next_boundary(boundaries, limit, length)
                elif spans and paragraph_start <= spans[-1][1]:
                    # Already covered by the previous chunk; the oversized paragraph starts its own
                    start = paragraph_start
                    continue
                else:
                    end = paragraph_start
            else:
                end = _soft_break(text, start, limit, overlap)

        spans.append((start, end))
        if end >= length:
            break
        start = _overlap_start(text, start, end, overlap, max_size)

    return [
        TextChunk(
            chunk_index=index,
            content=text[span_start:span_end],
            start_char=span_start,
            end_char=span_end,
            page_number=bisect_left(page_breaks, span_start) + 1,
        )
        for index, (span_start, span_end) in enumerate(spans)
    ]


def _last_boundary(boundaries: list[int], lower: int, upper: int) -> int | None:
    """Largest paragraph boundary in (lower, upper]."""
    index = bisect_right(boundaries, upper) - 1
    if index >= 0 and boundaries[index] > lower:
        return boundaries[index]
    return None


def _next_boundary(boundaries: list[int], after: int, length: int) -> int:
    """First paragraph boundary past ``after`` (end of the oversized paragraph)."""
    index = bisect_right(boundaries, after)
    return boundaries[index] if index < len(boundaries) else length


def _soft_break(text: str, start: int, limit: int, overlap: int) -> int:
    """Cut a paragraph that does not fit, preferring the last whitespace in the back half."""
    lower = start + max(overlap + 1, (limit - start) // 2)
    for position in range(limit - 1, lower - 1, -1):
        if text[position].isspace():
            return position + 1
    return limit


def _overlap_start(text: str, start: int, end: int, overlap: int, max_size: int) -> int:
    """Start of the next chunk: ``overlap`` characters back from ``end``, snapped to a word start."""
    candidate = end - overlap
    lower = max(start + 1, candidate - overlap // 2, end - max_size + 1)
    for position in range(candidate - 1, lower - 1, -1):
        if text[position].isspace():
            return position + 1
    return candidate
