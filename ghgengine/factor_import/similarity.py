# -*- coding: utf-8 -*-
"""
String similarity for duplicate factor names.

Levenshtein edit distance (insert, delete, substitute; no transpositions)
normalized by the longer string length::

    similarity = (max_len - edit_distance) / max_len

Callers lower-case and trim names before comparing.
"""

from typing import List


def levenshtein_distance(a: str, b: str) -> int:
    """Minimum single-character edits turning ``a`` into ``b``.

    Wagner-Fischer dynamic programme keeping two rows.
    """
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    len_a, len_b = len(a), len(b)
    prev_row: List[int] = list(range(len_b + 1))
    curr_row: List[int] = [0] * (len_b + 1)

    for i in range(1, len_a + 1):
        curr_row[0] = i
        for j in range(1, len_b + 1):
            cost = 0 if a[i - 1] == b[j - 1] else 1
            curr_row[j] = min(
                prev_row[j] + 1,
                curr_row[j - 1] + 1,
                prev_row[j - 1] + cost,
            )
        prev_row, curr_row = curr_row, prev_row

    return prev_row[len_b]


def similarity(a: str, b: str) -> float:
    """Normalized similarity in [0, 1]; two empty strings are identical."""
    longer = max(len(a), len(b))
    if longer == 0:
        return 1.0
    return (longer - levenshtein_distance(a, b)) / longer


__all__ = ["levenshtein_distance", "similarity"]
