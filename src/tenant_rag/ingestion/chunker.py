"""Text chunking strategies."""

from __future__ import annotations

from typing import Any

from langchain_text_splitters import TextSplitter

from tenant_rag.ingestion.models import Chunk


class WordTextSplitter(TextSplitter):
    """Split text on whitespace into chunks of at most *max_words* words.

    Unlike the character splitters shipped with LangChain this one has no
    overlap and no separator hierarchy, so the same text always yields the
    same chunk boundaries.  Every chunk holds exactly *max_words* words
    except the last one, which holds the remainder.
    """

    def __init__(self, max_words: int = 800, **kwargs: Any) -> None:
        if max_words <= 0:
            raise ValueError(f"max_words must be positive, got {max_words}")
        super().__init__(chunk_size=max_words, chunk_overlap=0, length_function=_word_count, **kwargs)
        self.max_words = max_words

    def split_text(self, text: str) -> list[str]:
        words = text.split()
        return [
            " ".join(words[start : start + self.max_words])
            for start in range(0, len(words), self.max_words)
        ]


def chunk_text(text: str, max_words: int = 800) -> list[Chunk]:
    """Split *text* into ordered :class:`Chunk` objects.

    Parameters
    ----------
    text:
        Normalised document text.  Empty or whitespace-only text yields
        no chunks.
    max_words:
        Maximum number of words per chunk.

    Returns
    -------
    list[Chunk]
        Chunks with 0-based ``chunk_index`` in emission order.
    """
    pieces = WordTextSplitter(max_words=max_words).split_text(text or "")
    return [
        Chunk(chunk_index=idx, text=piece, word_count=_word_count(piece))
        for idx, piece in enumerate(pieces)
    ]


def _word_count(text: str) -> int:
    return len(text.split())
