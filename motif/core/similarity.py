# ═══════════════════════════════════════════════════════════════════════════════
# PART 1: STRING SIMILARITY
# Implementation: I2 (Numerics)
# ═══════════════════════════════════════════════════════════════════════════════

"""
I2: "Novelty is just distance to what we've already seen. Classic Levenshtein
on the canonical text is enough - unit costs, no weights."
"""

from __future__ import annotations

import numpy as np


def edit_distance(a: str, b: str) -> int:
    """
    Levenshtein distance between two strings.

    Insert, delete and substitute each cost 1.
    """
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    # Two-row DP over character codes. Substitution and deletion come from the
    # previous row; the insertion chain along the row is a running minimum.
    codes = np.fromiter(map(ord, b), dtype=np.int64, count=len(b))
    offsets = np.arange(len(b) + 1, dtype=np.int64)
    previous = offsets.copy()

    for i, ca in enumerate(a, start=1):
        current = np.empty_like(previous)
        current[0] = i
        current[1:] = np.minimum(previous[:-1] + (codes != ord(ca)), previous[1:] + 1)
        previous = np.minimum.accumulate(current - offsets) + offsets

    return int(previous[-1])


def string_similarity(a: str, b: str) -> float:
    """
    Normalized similarity in [0, 1].

    (len(longer) - distance) / len(longer); two empty strings are identical.
    """
    longer = max(len(a), len(b))
    if longer == 0:
        return 1.0
    return (longer - edit_distance(a, b)) / float(longer)
