"""
String similarity for short-answer grading.

Similarity is the normalized Levenshtein edit distance between two strings.
"""

from decimal import Decimal

from rapidfuzz.distance import Levenshtein


def levenshtein_distance(first: str, second: str) -> int:
    """
    Minimum number of single-character inserts, deletes and substitutions
    needed to turn ``first`` into ``second``.
    """
    return Levenshtein.distance(first, second)


def string_similarity(first: str, second: str) -> Decimal:
    """
    Similarity between two strings in [0, 1], where 1 means identical.

    Computed as ``(maxLen - distance) / maxLen``; two empty strings are
    identical.
    """
    max_len = max(len(first), len(second))
    if max_len == 0:
        return Decimal(1)
    distance = levenshtein_distance(first, second)
    return Decimal(max_len - distance) / Decimal(max_len)
