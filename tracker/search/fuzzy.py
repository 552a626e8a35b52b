"""Ranked lookup for symbol and broker pickers."""

from collections.abc import Callable, Sequence
from typing import TypeVar

T = TypeVar("T")

EXACT_SCORE = 1000
PREFIX_SCORE = 900
SUBSTRING_SCORE = 800
SUBSEQUENCE_SCORE = 500


def is_subsequence(query: str, value: str) -> bool:
    """True if every character of ``query`` appears in ``value`` in order."""
    remaining = iter(value)
    return all(char in remaining for char in query)


def score_match(query: str, value: str) -> int:
    """Score a candidate against a normalized (lowercased, stripped) query. 0 means no match."""
    candidate = value.lower()
    if candidate == query:
        return EXACT_SCORE
    if candidate.startswith(query):
        return PREFIX_SCORE
    if query in candidate:
        return SUBSTRING_SCORE
    if is_subsequence(query, candidate):
        return SUBSEQUENCE_SCORE
    return 0


def fuzzy_search(
    query: str,
    options: Sequence[T],
    get_value: Callable[[T], str],
    limit: int = 10,
) -> list[T]:
    """Return the best ``limit`` options for ``query``, best first.

    A blank query returns every option unchanged. Ties keep their original
    order.
    """
    normalized = query.strip().lower()
    if not normalized:
        return list(options)
    scored = [(score_match(normalized, get_value(option)), option) for option in options]
    matches = [pair for pair in scored if pair[0] > 0]
    matches.sort(key=lambda pair: pair[0], reverse=True)
    return [option for _, option in matches[:limit]]
