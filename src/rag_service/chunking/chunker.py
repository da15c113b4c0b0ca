"""
Text Chunker

Splits raw document text into an ordered list of bounded, overlapping chunks
suitable for embedding and retrieval.

Strategies
----------
- paragraph: split on blank lines; paragraphs that already fit are returned
  as-is, otherwise paragraphs are packed into chunks.
- sentence: split on sentence terminators with a light abbreviation
  heuristic, then pack sentences into chunks.
- fixed_size: slide a character window across the text.

Properties
----------
- Deterministic: no randomness, no I/O.
- Never raises for content: blank input yields an empty list.
- Never emits a whitespace-only chunk.
- Chunk length is bounded by ``max_chunk_size`` except for the merged tail
  of a fixed-size split.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger("rag.chunker")


# ---------------------------------------------------------------------
# Options
# ---------------------------------------------------------------------

class ChunkingStrategy(str, Enum):
    PARAGRAPH = "paragraph"
    SENTENCE = "sentence"
    FIXED_SIZE = "fixed_size"


class ChunkingOptions(BaseModel):
    """
    Chunking configuration.

    ``chunk_overlap`` is not required to be smaller than ``max_chunk_size``;
    a non-positive window stride falls back to non-overlapping windows.
    """

    strategy: ChunkingStrategy = Field(
        default=ChunkingStrategy.PARAGRAPH,
        description="Chunking strategy. Unknown values fall back to paragraph.",
    )

    max_chunk_size: int = Field(
        default=1000,
        gt=0,
        description="Maximum chunk length in characters.",
    )

    chunk_overlap: int = Field(
        default=100,
        ge=0,
        description="Characters shared between consecutive chunks.",
    )

    model_config = ConfigDict(frozen=True)

    @field_validator("strategy", mode="before")
    @classmethod
    def _fallback_strategy(cls, value):
        return parse_strategy(value)


def parse_strategy(value) -> ChunkingStrategy:
    """
    Resolve a strategy name. Unknown names fall back to paragraph.
    """
    if isinstance(value, ChunkingStrategy):
        return value
    try:
        return ChunkingStrategy(value)
    except ValueError:
        logger.warning("Unknown chunking strategy %r, using paragraph", value)
        return ChunkingStrategy.PARAGRAPH


# ---------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------

def chunk_text(text: str, options: Optional[ChunkingOptions] = None) -> List[str]:
    """
    Split ``text`` into chunks according to ``options``.

    Parameters
    ----------
    text : str
        Raw document text.

    options : Optional[ChunkingOptions]
        Strategy, size and overlap. Defaults to ``ChunkingOptions()``.

    Returns
    -------
    List[str]
        Ordered, non-blank chunks. Empty when ``text`` is blank.
    """
    if options is None:
        options = ChunkingOptions()

    splitter = _STRATEGIES.get(options.strategy, chunk_by_paragraph)
    return splitter(text, options.max_chunk_size, options.chunk_overlap)


def chunk_by_paragraph(text: str, max_size: int, overlap: int) -> List[str]:
    """
    Split on blank lines. If every paragraph fits within ``max_size`` the
    paragraphs are returned unchanged; otherwise they are packed.
    """
    paragraphs = _clean(text.split("\n\n"))
    if not paragraphs:
        return []

    if all_paragraphs_fit(paragraphs, max_size):
        return paragraphs

    return combine_items_into_chunks(paragraphs, max_size, overlap)


def chunk_by_sentence(text: str, max_size: int, overlap: int) -> List[str]:
    """
    Split into sentences and pack them into chunks.
    """
    sentences = _clean(split_into_sentences(text))
    if not sentences:
        return []

    return combine_items_into_chunks(sentences, max_size, overlap)


def chunk_by_fixed_size(text: str, max_size: int, overlap: int) -> List[str]:
    """
    Slide a ``max_size`` window over the trimmed text, advancing by
    ``max_size - overlap`` characters.

    A final window shorter than a quarter of ``max_size`` is merged into the
    previous chunk, which is extended to the end of the text. The merge only
    happens when that chunk is the window directly before the tail; after a
    skipped whitespace-only window the tail stands alone.
    """
    text = text.strip()
    if not text:
        return []

    if len(text) <= max_size:
        return [text]

    stride = max_size - overlap
    if stride <= 0:
        stride = max_size

    chunks: List[str] = []
    last_start = 0
    length = len(text)

    for start in range(0, length, stride):
        end = min(start + max_size, length)

        if end - start < max_size // 4 and chunks and last_start == start - stride:
            chunks[-1] = text[last_start:end]
            break

        window = text[start:end]
        if window.strip():
            chunks.append(window)
            last_start = start

        if end == length:
            break

    return chunks


# ---------------------------------------------------------------------
# Packing
# ---------------------------------------------------------------------

def combine_items_into_chunks(
    items: Sequence[str],
    max_size: int,
    overlap: int,
) -> List[str]:
    """
    Greedily pack items (paragraphs or sentences) into chunks.

    Items are joined with single spaces. When the next item would push the
    running buffer past ``max_size`` the buffer is closed and the next one is
    seeded with the trailing words of the closed buffer (see
    ``overlap_tail``). A buffer that still exceeds ``max_size`` (an oversized
    item) is re-split with the fixed-size strategy and only its last piece is
    kept running.
    """
    chunks: List[str] = []
    current = ""

    for item in items:
        if current and len(current) + 1 + len(item) > max_size:
            closed = current.strip()
            if closed:
                chunks.append(closed)

            seed = ""
            if overlap > 0 and len(current) > overlap:
                words = current.split()
                if len(words) > 3:
                    seed = overlap_tail(words, overlap)

            current = f"{seed} {item}" if seed else item
        else:
            current = f"{current} {item}" if current else item

        if len(current) > max_size:
            pieces = chunk_by_fixed_size(current, max_size, overlap)
            chunks.extend(pieces[:-1])
            current = pieces[-1] if pieces else ""

    tail = current.strip()
    if tail:
        chunks.append(tail)

    return chunks


def overlap_tail(words: Sequence[str], overlap: int) -> str:
    """
    Return the trailing words of ``words`` that cover roughly ``overlap``
    characters.

    Words are taken from the end, each counted with one separator, until the
    running length reaches ``overlap`` or only three words remain ahead of
    the walk.
    """
    total = 0
    start = len(words)

    for i in range(len(words) - 1, -1, -1):
        total += len(words[i]) + 1
        if total >= overlap or i <= 3:
            start = i
            break

    return " ".join(words[start:])


# ---------------------------------------------------------------------
# Sentence Splitting
# ---------------------------------------------------------------------

_TERMINATORS = ".!?"


def split_into_sentences(text: str) -> List[str]:
    """
    Split text after sentence terminators.

    A terminator closes a sentence when followed by whitespace and an
    uppercase letter, or, for a period, when followed by whitespace outside
    a suspected abbreviation. A letter directly followed by a period flags a
    suspected abbreviation; whitespace clears it.
    """
    sentences: List[str] = []
    current: List[str] = []
    in_abbreviation = False
    length = len(text)

    for i, ch in enumerate(text):
        current.append(ch)

        if ch in _TERMINATORS:
            if i + 1 < length:
                nxt = text[i + 1]

                if nxt.isspace() and i + 2 < length and text[i + 2].isupper():
                    sentences.append("".join(current))
                    current = []
                    in_abbreviation = False
                    continue

                if ch == "." and nxt.isspace() and not in_abbreviation:
                    sentences.append("".join(current))
                    current = []
                    continue
            else:
                sentences.append("".join(current))
                current = []
                break

        if ch.isalpha() and i + 1 < length and text[i + 1] == ".":
            in_abbreviation = True
        elif ch.isspace():
            in_abbreviation = False

    if current:
        sentences.append("".join(current))

    return sentences


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------

def all_paragraphs_fit(paragraphs: Sequence[str], max_size: int) -> bool:
    return all(len(p) <= max_size for p in paragraphs)


def _clean(items: Sequence[str]) -> List[str]:
    return [s for s in (item.strip() for item in items) if s]


_STRATEGIES: Dict[ChunkingStrategy, Callable[[str, int, int], List[str]]] = {
    ChunkingStrategy.PARAGRAPH: chunk_by_paragraph,
    ChunkingStrategy.SENTENCE: chunk_by_sentence,
    ChunkingStrategy.FIXED_SIZE: chunk_by_fixed_size,
}
