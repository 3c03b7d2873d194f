"""Keyword and hybrid (keyword plus embedding) search over indexed code blocks."""

from __future__ import annotations

import math
import sys
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from tokenstunt.models import CodeBlock, CodeBlockKind, Store

DEFAULT_HYBRID_ALPHA = 0.4
DEFAULT_LIMIT = 10

_SEPARATORS = ".-:/"


class SearchSource(Enum):
    """Which ranking produced a result."""

    BM25 = "bm25"
    SEMANTIC = "semantic"
    HYBRID = "hybrid"


@dataclass
class SearchResult:
    block: CodeBlock
    score: float
    source: SearchSource


@dataclass
class SearchQuery:
    """A search request; a limit of 0 means the default of 10."""

    text: str = ""
    scope: Optional[str] = None
    language: Optional[str] = None
    symbol_kind: Optional[CodeBlockKind] = None
    limit: int = 0
    query_embedding: Optional[Sequence[float]] = None


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine of the angle between two vectors; 0.0 if either is all zeros."""
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(x * x for x in b))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return dot / (norm_a * norm_b)


def _min_max_scores(raw_scores: Iterable[float]) -> tuple[float, float]:
    scores = list(raw_scores)
    return min(scores, default=math.inf), max(scores, default=-math.inf)


def _normalize(raw_score: float, low: float, span: float) -> float:
    """Map a BM25 rank (lower is better) onto 1.0 for the best and 0.0 for the worst."""
    if abs(span) < sys.float_info.epsilon:
        return 1.0
    return 1.0 - (raw_score - low) / span


def normalize_bm25_results(results: Sequence[tuple[CodeBlock, float]]) -> list[SearchResult]:
    """Turn raw BM25 ranks into scores between 0 and 1, keeping the order."""
    if not results:
        return []
    low, high = _min_max_scores(score for _, score in results)
    span = high - low
    return [
        SearchResult(block=block, score=_normalize(raw, low, span), source=SearchSource.BM25)
        for block, raw in results
    ]


def sanitize_fts_term(term: str) -> str:
    """Keep only letters, digits and underscores."""
    return "".join(c for c in term if c.isalnum() or c == "_")


def split_camel_case(text: str) -> list[str]:
    """Split camelCase or PascalCase; empty when there is nothing to split."""
    parts: list[str] = []
    current = ""
    for i, c in enumerate(text):
        if c.isupper() and current:
            prev_lower = i > 0 and text[i - 1].islower()
            next_lower = i + 1 < len(text) and text[i + 1].islower()
            if prev_lower or (next_lower and len(current.encode("utf-8")) > 1):
                parts.append(current)
                current = ""
        current += c
    if current:
        parts.append(current)
    return parts if len(parts) > 1 else []


def _split_separators(text: str) -> list[str]:
    for separator in _SEPARATORS[1:]:
        text = text.replace(separator, _SEPARATORS[0])
    return [segment for segment in text.split(_SEPARATORS[0]) if segment]


def split_identifier(text: str) -> list[str]:
    """Lower-cased component parts of a compound identifier, without repeats.

    Splits on dots, hyphens, colons and slashes, and on camel case, keeping
    each whole segment and, for compound input, the whole identifier too.
    """
    parts: list[str] = []

    def add(part: str) -> None:
        if part and part not in parts:
            parts.append(part)

    segments = _split_separators(text)
    for segment in segments:
        sanitized = sanitize_fts_term(segment)
        if not sanitized:
            continue
        for part in split_camel_case(sanitized):
            add(part.lower())
        add(sanitized.lower())

    if len(segments) > 1:
        add(sanitize_fts_term(text).lower())

    return parts


def build_fts_query(text: str) -> str:
    """An FTS5 query matching any term of ``text`` as a prefix."""
    terms: list[str] = []
    for word in text.split():
        parts = split_identifier(word)
        if not parts:
            sanitized = sanitize_fts_term(word)
            parts = [sanitized] if sanitized else []
        for part in parts:
            if part not in terms:
                terms.append(part)
    return " OR ".join(f"{term}*" for term in terms)


class SearchEngine:
    """Ranks code blocks for a query, mixing BM25 with embedding similarity."""

    def __init__(self, store: Store, hybrid_alpha: float = DEFAULT_HYBRID_ALPHA) -> None:
        self.store = store
        self.hybrid_alpha = hybrid_alpha

    def search(self, query: SearchQuery) -> list[SearchResult]:
        if not query.text.strip():
            return []

        limit = query.limit or DEFAULT_LIMIT
        kind = query.symbol_kind.as_str() if query.symbol_kind is not None else None
        bm25_results = self.store.search_fts(
            build_fts_query(query.text),
            query.language,
            kind,
            query.scope,
            limit,
        )

        if query.query_embedding is None:
            return normalize_bm25_results(bm25_results)
        query_vec = list(query.query_embedding)

        candidate_ids = [block.id for block, _ in bm25_results]
        stored = self.store.get_embeddings_by_block_ids(candidate_ids)
        if not stored:
            return normalize_bm25_results(bm25_results)

        semantic = {block_id: cosine_similarity(query_vec, vec) for block_id, vec in stored}
        low, high = _min_max_scores(score for _, score in bm25_results)
        span = high - low
        alpha = self.hybrid_alpha

        results = []
        for block, raw in bm25_results:
            cosine = semantic.get(block.id, 0.0)
            score = alpha * _normalize(raw, low, span) + (1.0 - alpha) * cosine
            source = SearchSource.HYBRID if cosine > 0.0 else SearchSource.BM25
            results.append(SearchResult(block=block, score=score, source=source))

        results.sort(key=lambda result: result.score, reverse=True)
        return results[:limit]

    def lookup_symbol(self, name: str, kind: Optional[CodeBlockKind] = None) -> list[CodeBlock]:
        return self.store.lookup_symbol(name, kind)