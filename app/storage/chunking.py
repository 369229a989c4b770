"""
Content chunking for backends with a per-field character limit.

A long text is stored as a main segment (the first ``max_len`` characters
followed by a truncation marker) plus ordered overflow segments of at most
``max_len`` characters each. ``join`` reverses ``split`` exactly.
"""
import unicodedata
from typing import List, Sequence, Tuple

TRUNCATION_MARKER = "..."

# Notion rich text fields hold 2000 characters; keep a margin
DEFAULT_MAX_LENGTH = 1990

# Smallest limit that holds the marker plus one character
MIN_MAX_LENGTH = len(TRUNCATION_MARKER) + 1


def _safe_cut(text: str, start: int, max_len: int) -> int:
    """
    Return the end offset of the chunk starting at ``start``.

    Python strings index by code point, so a cut never splits a scalar value.
    The cut is moved back while the next character is a combining mark so a
    base character stays with its marks, unless that would empty the chunk.
    """
    end = min(start + max_len, len(text))
    if end >= len(text):
        return end

    cut = end
    while cut > start and unicodedata.combining(text[cut]):
        cut -= 1
    if cut == start:
        return end
    return cut


def split(text: str, max_len: int = DEFAULT_MAX_LENGTH) -> Tuple[str, List[str]]:
    """
    Split ``text`` into a main segment and overflow segments.

    Args:
        text: Content to split
        max_len: Maximum characters per segment (marker excluded)

    Returns:
        (main_segment, overflow_segments). Text that fits is returned
        unchanged with no overflow and no marker.

    Raises:
        ValueError: If max_len is too small to hold the marker and a character
    """
    if max_len < MIN_MAX_LENGTH:
        raise ValueError(f"max_len must be at least {MIN_MAX_LENGTH}, got {max_len}")

    if not needs_split(text, max_len):
        return text, []

    main_end = _safe_cut(text, 0, max_len)
    main_segment = text[:main_end] + TRUNCATION_MARKER

    overflow = []
    position = main_end
    while position < len(text):
        end = _safe_cut(text, position, max_len)
        overflow.append(text[position:end])
        position = end

    return main_segment, overflow


def join(main_segment: str, overflow_segments: Sequence[str]) -> str:
    """
    Reassemble content written by ``split``.

    The truncation marker is only stripped when overflow segments exist,
    since ``split`` only adds it in that case.
    """
    if not overflow_segments:
        return main_segment

    if main_segment.endswith(TRUNCATION_MARKER):
        main_segment = main_segment[:-len(TRUNCATION_MARKER)]
    return main_segment + "".join(overflow_segments)


def needs_split(text: str, max_len: int = DEFAULT_MAX_LENGTH) -> bool:
    """Check if ``text`` is too long for a single field."""
    return len(text) > max_len
