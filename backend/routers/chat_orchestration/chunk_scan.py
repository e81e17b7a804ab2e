"""
Chunk Scan - legacy sequential strategy for answering from a large document

The document is cut into fixed-size chunks and each chunk is asked the
question in turn. The first answer that is not the refusal sentence wins;
chunks whose call fails are skipped. No fan-out: one call at a time.

Selected with CONTEXT_STRATEGY=chunked. The keyword excerpt strategy is
the default.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from errors import CompletionError

from ..chat_prompts import CHUNK_SYSTEM_PROMPT, build_chunk_prompt, cleanup_response_text, is_refusal, refusal_sentence

logger = logging.getLogger(__name__)

# A cut moves back to the last space only when it lies beyond this share of the chunk
WORD_BOUNDARY_RATIO = 0.8


def split_text_into_chunks(text: str, max_length: int) -> List[str]:
    """Split ``text`` into trimmed chunks of at most ``max_length`` chars.

    Every chunk except the last is cut at its last space when that space
    falls past 80% of the chunk, so words are not split in the common case.
    """
    if max_length < 1:
        raise ValueError(f"max_length must be positive, got {max_length}")

    chunks: List[str] = []
    position = 0
    total = len(text)

    while position < total:
        size = min(max_length, total - position)
        chunk = text[position:position + size]

        if position + size < total:
            last_space = chunk.rfind(" ")
            if last_space > size * WORD_BOUNDARY_RATIO:
                chunk = chunk[:last_space]
                size = last_space

        chunks.append(chunk.strip())
        position += size

    return chunks


@dataclass
class ChunkScanResult:
    """Outcome of a sequential chunk scan.

    Attributes:
        answer: First non-refusal answer, or the refusal sentence
        total_chunks: Chunks the document was split into
        chunks_tried: Chunks actually sent (bounded by max_chunks)
        answered_by: 1-based number of the chunk that answered, if any
        failed_chunks: Chunks whose completion call failed
    """

    answer: str
    total_chunks: int
    chunks_tried: int
    answered_by: Optional[int] = None
    failed_chunks: int = 0


async def scan_chunks(client, config, document_text: str, question: str) -> ChunkScanResult:
    """Ask ``question`` chunk by chunk until one chunk answers it.

    Args:
        client: CompletionClient
        config: RuntimeConfig (chunk_size, max_chunks, excerpt_timeout)
        document_text: Full document text
        question: User question

    Returns:
        ChunkScanResult; never raises CompletionError
    """
    chunks = [c for c in split_text_into_chunks(document_text, config.chunk_size) if c]
    total = len(chunks)
    limit = min(total, config.max_chunks)
    fallback = refusal_sentence(config)

    result = ChunkScanResult(answer=fallback, total_chunks=total, chunks_tried=0)

    for index, chunk in enumerate(chunks[:limit], start=1):
        result.chunks_tried = index
        prompt = build_chunk_prompt(config, chunk, question, index, total)
        try:
            completion = await client.complete(
                CHUNK_SYSTEM_PROMPT,
                prompt,
                timeout=config.excerpt_timeout,
                options={"max_tokens": None},
            )
        except CompletionError as e:
            result.failed_chunks += 1
            logger.warning(f"Chunk {index}/{total} skipped: {e}")
            continue

        answer = cleanup_response_text(completion.content)
        if answer and not is_refusal(answer, config):
            result.answer = answer
            result.answered_by = index
            logger.info(f"Chunk {index}/{total} answered the question")
            return result

    logger.info(f"No chunk answered the question ({result.chunks_tried}/{total} tried, {result.failed_chunks} failed)")
    return result
