"""
Shapes retrieved passages for the answer-generation call and for citation display.
"""
from typing import List, Dict, Optional

from ..models import Chunk, resolve_reference


def to_answer_contexts(chunks: List[Chunk]) -> List[Dict[str, Optional[str]]]:
    """
    Minimal {id, text, work} triples for the language-model request.

    The id is the chunk's best reference, or "?" when it has none.
    """
    return [
        {
            'id': resolve_reference(c) or "?",
            'text': c.text or "",
            'work': c.work,
        }
        for c in chunks
    ]


def source_snippets(chunks: List[Chunk], max_chars: int = 150) -> List[Dict[str, Optional[str]]]:
    """Citation entries with a truncated snippet of each passage."""
    snippets = []
    for context in to_answer_contexts(chunks):
        text = context['text']
        snippet = text[:max_chars] + ("…" if len(text) > max_chars else "")
        snippets.append({'ref': context['id'], 'work': context['work'], 'snippet': snippet})
    return snippets


def find_passage(chunks: List[Chunk], ref: str) -> Optional[Chunk]:
    """First chunk whose reference is ref."""
    for chunk in chunks:
        if resolve_reference(chunk) == ref:
            return chunk
    return None
