"""Similarity scoring between actual and expected cleanup output."""

import re

_WHITESPACE = re.compile(r"\s+")


def _normalize(text: str) -> str:
    return _WHITESPACE.sub(" ", text.lower()).strip()


def levenshtein(a: str, b: str) -> int:
    """Edit distance with unit cost insert, delete and substitute."""
    if len(a) < len(b):
        a, b = b, a
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + (char_a != char_b),
            ))
        previous = current
    return previous[-1]


def normalized_similarity(actual: str, expected: str) -> float:
    """
    Score how close ``actual`` is to ``expected``, from 0.0 to 1.0.

    Both strings are lower-cased and whitespace runs collapsed before
    comparison. Two empty strings are identical (1.0).
    """
    a = _normalize(actual)
    b = _normalize(expected)
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return 1.0 - levenshtein(a, b) / longest
