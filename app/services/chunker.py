# =============================================================================
# Token-Based Text Chunker — tiktoken
# =============================================================================
#
# Splits a parsed document into overlapping token windows, each annotated
# with the page it starts on, the section heading it falls under and the
# source filename (shown to users as the answer's source document).
#
# Token-based (not character-based) because the embedding model's limits
# are in tokens and cl100k_base is the tokenizer text-embedding-3-small
# uses, so token counts are exact.
#
# ALGORITHM:
# 1. Join elements with "\n\n", recording each element's start offset
# 2. Encode the whole text once
# 3. decode_with_offsets() gives the character offset of every token
# 4. Slide a chunk_size window with chunk_overlap tokens of overlap
# 5. Map each window's character range back to the elements it covers
# =============================================================================

from __future__ import annotations

import bisect
import logging
from dataclasses import dataclass, field

import tiktoken

from app.services.parser import ParsedDocument

logger = logging.getLogger(__name__)

_SEPARATOR = "\n\n"


@dataclass
class ChunkResult:
    """A chunk ready for embedding and storage."""

    content: str
    page_number: int  # page the chunk starts on
    chunk_index: int
    token_count: int
    metadata: dict = field(default_factory=dict)
    # metadata keys:
    #   source: str — filename the chunk came from
    #   section_title: str | None
    #   contains_table: bool
    #   source_pages: list[int]
    #   element_types: list[str]


_encoder: tiktoken.Encoding | None = None


def _get_encoder() -> tiktoken.Encoding:
    global _encoder
    if _encoder is None:
        _encoder = tiktoken.get_encoding("cl100k_base")
    return _encoder


def count_tokens(text: str) -> int:
    return len(_get_encoder().encode(text))


def chunk_document(
    parsed_doc: ParsedDocument,
    chunk_size: int = 256,
    chunk_overlap: int = 50,
) -> list[ChunkResult]:
    """
    Split a parsed document into token-window chunks with metadata.

    Raises:
        ValueError: If chunk_overlap is not smaller than chunk_size.
    """
    if chunk_overlap >= chunk_size:
        raise ValueError(
            f"chunk_overlap ({chunk_overlap}) must be smaller than "
            f"chunk_size ({chunk_size})"
        )
    if not parsed_doc.elements:
        logger.warning("No elements to chunk in '%s'", parsed_doc.filename)
        return []

    encoder = _get_encoder()

    element_starts: list[int] = []
    position = 0
    for element in parsed_doc.elements:
        element_starts.append(position)
        position += len(element.text) + len(_SEPARATOR)
    full_text = _SEPARATOR.join(e.text for e in parsed_doc.elements)

    tokens = encoder.encode(full_text)
    if not tokens:
        logger.warning("No tokens after encoding '%s'", parsed_doc.filename)
        return []
    _, token_offsets = encoder.decode_with_offsets(tokens)

    logger.info(
        "Chunking '%s': %d tokens total, chunk_size=%d, overlap=%d",
        parsed_doc.filename, len(tokens), chunk_size, chunk_overlap,
    )

    chunks: list[ChunkResult] = []
    step = chunk_size - chunk_overlap

    for start in range(0, len(tokens), step):
        end = min(start + chunk_size, len(tokens))
        window = tokens[start:end]
        text = encoder.decode(window).strip()

        if text:
            char_start = token_offsets[start]
            char_end = token_offsets[end] if end < len(tokens) else len(full_text)
            first = max(bisect.bisect_right(element_starts, char_start) - 1, 0)
            last = max(bisect.bisect_left(element_starts, char_end) - 1, first)
            covered = parsed_doc.elements[first:last + 1]

            chunks.append(ChunkResult(
                content=text,
                page_number=covered[0].page_number or 1,
                chunk_index=len(chunks),
                token_count=len(window),
                metadata={
                    "source": parsed_doc.filename,
                    "section_title": next(
                        (e.section_title for e in covered if e.section_title), None,
                    ),
                    "contains_table": any(
                        e.element_type == "table" for e in covered
                    ),
                    "source_pages": sorted(
                        {e.page_number for e in covered if e.page_number > 0}
                    ),
                    "element_types": sorted({e.element_type for e in covered}),
                },
            ))

        if end >= len(tokens):
            break

    logger.info(
        "Chunked '%s' into %d chunks (avg %d tokens/chunk)",
        parsed_doc.filename,
        len(chunks),
        len(tokens) // max(len(chunks), 1),
    )
    return chunks
