"""Shared string-similarity primitives for the suggestion services.

All three services (node types, resources, operations) score candidates with
the same bounded Levenshtein distance:

  - If the length difference alone exceeds the bound, ``bound + 1`` is
    returned without touching the matrix.
  - The DP table is kept as two rolling rows; once every cell of the current
    row exceeds the bound the computation stops early.

``similarity_ratio`` turns a distance into ``1 - d / max_len`` and boosts
single- and double-edit near misses on short words (<= 5 chars), where the
raw ratio under-rewards obvious typos ("slak" vs "slack").
"""

from __future__ import annotations

import re

DEFAULT_MAX_DISTANCE = 5
MIN_SUBSTRING_SIMILARITY = 0.7
SHORT_WORD_LENGTH = 5
SINGLE_EDIT_FLOOR = 0.75
DOUBLE_EDIT_FLOOR = 0.72

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def normalize(text: str) -> str:
    """Lowercase and strip everything that is not a-z/0-9."""
    return _NON_ALNUM.sub("", (text or "").lower())


def edit_distance(s1: str, s2: str, max_distance: int | None = DEFAULT_MAX_DISTANCE) -> int:
    """Levenshtein distance, capped at ``max_distance + 1`` when a bound is given.

    Pass ``max_distance=None`` for the exact (unbounded) distance.
    """
    if s1 == s2:
        return 0

    m, n = len(s1), len(s2)
    if max_distance is not None and abs(m - n) > max_distance:
        return max_distance + 1
    if m == 0:
        return n
    if n == 0:
        return m

    prev = list(range(n + 1))
    for i in range(1, m + 1):
        curr = [i] + [0] * n
        row_min = i
        c1 = s1[i - 1]
        for j in range(1, n + 1):
            cost = 0 if c1 == s2[j - 1] else 1
            val = min(curr[j - 1] + 1, prev[j] + 1, prev[j - 1] + cost)
            curr[j] = val
            if val < row_min:
                row_min = val
        if max_distance is not None and row_min > max_distance:
            return max_distance + 1
        prev = curr
    return prev[n]


def plain_similarity(s1: str, s2: str) -> float:
    """``1 - distance / max_len`` over already-normalised strings."""
    if s1 == s2:
        return 1.0
    if not s1 or not s2:
        return 0.0
    max_len = max(len(s1), len(s2))
    return 1 - edit_distance(s1, s2, max_distance=max_len) / max_len


def similarity_ratio(str1: str, str2: str) -> float:
    """Case-insensitive similarity in [0, 1] with substring and short-word floors."""
    s1, s2 = str1.lower(), str2.lower()
    if s1 == s2:
        return 1.0
    if not s1 or not s2:
        return 0.0

    if s1 in s2 or s2 in s1:
        ratio = min(len(s1), len(s2)) / max(len(s1), len(s2))
        return max(MIN_SUBSTRING_SIMILARITY, ratio)

    max_len = max(len(s1), len(s2))
    distance = edit_distance(s1, s2, max_distance=max_len)
    similarity = 1 - distance / max_len

    if max_len <= SHORT_WORD_LENGTH:
        if distance == 1:
            similarity = max(similarity, SINGLE_EDIT_FLOOR)
        elif distance == 2:
            # transposition
            similarity = max(similarity, DOUBLE_EDIT_FLOOR)
    return similarity


# ---------------------------------------------------------------------------
# Singular / plural heuristics
# ---------------------------------------------------------------------------

_SIBILANT_SUFFIXES = ("s", "x", "z", "ch", "sh")


def to_singular(word: str) -> str:
    """Suffix-rule singular ('entries' -> 'entry', 'boxes' -> 'box', 'files' -> 'file')."""
    if word.endswith("ies") and len(word) > 3:
        return word[:-3] + "y"
    if word.endswith("es") and word[:-2].endswith(_SIBILANT_SUFFIXES):
        return word[:-2]
    if word.endswith("s") and not word.endswith("ss"):
        return word[:-1]
    return word


def to_plural(word: str) -> str:
    """Suffix-rule plural ('entry' -> 'entries', 'box' -> 'boxes', 'day' -> 'days')."""
    if word.endswith("y") and word[-2:-1] not in ("a", "e", "i", "o", "u", ""):
        return word[:-1] + "ies"
    if word.endswith(_SIBILANT_SUFFIXES):
        return word + "es"
    return word + "s"
