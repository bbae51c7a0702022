"""Approximate text search over documents.

Scores are ``difflib`` similarity ratios. A value matches a pattern when the
best ratio over the whole value and each of its pattern-sized windows leaves a
distance (``1 - ratio``) within the threshold.
"""

from difflib import SequenceMatcher
from typing import Any

from crudforge.persistence.filters import path_values

DEFAULT_THRESHOLD = 0.4


def _leaf_strings(value: Any) -> list[str]:
    if value is None or isinstance(value, dict):
        return []
    if isinstance(value, list):
        return [s for item in value for s in _leaf_strings(item)]
    return [str(value)]


def similarity(pattern: str, text: str) -> float:
    """Best ratio between ``pattern`` and ``text`` or any equal-length window of it."""
    pattern = pattern.lower()
    text = text.lower()
    if not pattern or not text:
        return 0.0

    matcher = SequenceMatcher(None, "", pattern)
    best = 0.0
    candidates = [text]
    width = len(pattern)
    if len(text) > width:
        candidates.extend(text[i : i + width] for i in range(len(text) - width + 1))

    for candidate in candidates:
        matcher.set_seq1(candidate)
        best = max(best, matcher.ratio())
        if best == 1.0:
            break
    return best


def fuzzy_search(
    documents: list[dict[str, Any]],
    pattern: str,
    keys: list[str],
    threshold: float = DEFAULT_THRESHOLD,
) -> list[dict[str, Any]]:
    """Documents whose value at one of ``keys`` approximately matches ``pattern``.

    Results are ordered by best score, ties keeping the input order.
    """
    scored: list[tuple[float, int, dict[str, Any]]] = []
    for position, document in enumerate(documents):
        texts = [text for key in keys for text in _leaf_strings(path_values(document, key))]
        if not texts:
            continue
        best = max(similarity(pattern, text) for text in texts)
        if 1.0 - best <= threshold:
            scored.append((-best, position, document))

    scored.sort(key=lambda item: (item[0], item[1]))
    return [document for _, _, document in scored]
