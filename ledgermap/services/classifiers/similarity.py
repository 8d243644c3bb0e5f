"""
Normalized string similarity based on Levenshtein edit distance.
"""
import re

# Separators such as "-", "&", "/" and "(" carry no meaning in ledger names
_PUNCTUATION = re.compile(r"[^\w\s]+")
_WHITESPACE = re.compile(r"\s+")


def normalize(text: str) -> str:
    """
    Normalize a name for comparison.

    Case-folds, turns punctuation runs into spaces, collapses whitespace and
    trims, so "Rent - Office" and "rent office" compare equal.
    """
    if not text:
        return ""
    text = _PUNCTUATION.sub(" ", text.casefold())
    return _WHITESPACE.sub(" ", text).strip()


def levenshtein_distance(a: str, b: str) -> int:
    """
    Classic edit distance (single-character insertion, deletion, substitution).

    Args:
        a: First string.
        b: Second string.

    Returns:
        Minimum number of edits turning ``a`` into ``b``.
    """
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    # Keep the shorter string on the inner loop
    if len(a) < len(b):
        a, b = b, a

    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            cost = 0 if char_a == char_b else 1
            current.append(min(
                previous[j] + 1,         # deletion
                current[j - 1] + 1,      # insertion
                previous[j - 1] + cost,  # substitution
            ))
        previous = current

    return previous[-1]


def similarity(a: str, b: str) -> float:
    """
    Similarity score between two names in [0, 1].

    Equal names (after normalization) score 1.0; an empty name against a
    non-empty one scores 0.0. Names made only of punctuation normalize to
    empty and match only when their case-folded text is identical.
    Otherwise the edit distance is scaled by the longer length.
    """
    s1 = normalize(a)
    s2 = normalize(b)

    if s1 == s2:
        if not s1 and (a or "").casefold().strip() != (b or "").casefold().strip():
            return 0.0
        return 1.0
    if not s1 or not s2:
        return 0.0

    return 1.0 - levenshtein_distance(s1, s2) / max(len(s1), len(s2))
