from typing import Iterable, Tuple, Optional, List

from rapidfuzz.distance import Levenshtein

# A typed name at or above this score is treated as a typo of a known name.
RESOLVE_THRESHOLD = 0.7
# Looser cutoff for autocomplete while the user is still typing.
SUGGEST_THRESHOLD = 0.5
SUGGEST_LIMIT = 5
MIN_QUERY_LENGTH = 2


def name_token(name: str) -> str:
    """Comparison form of an exercise name. Stored names keep their casing."""
    return (name or "").casefold()


def similarity(a: str, b: str) -> float:
    """
    Normalized edit-distance similarity between two names, in [0, 1].

    Both names are case-folded, then scored as
    1 - levenshtein(a, b) / max(len(a), len(b)).
    Two empty names are identical (1.0).
    """
    a, b = name_token(a), name_token(b)
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return 1.0 - Levenshtein.distance(a, b) / longest


def _ordered(choices: Iterable[str]) -> List[str]:
    # case-folded then raw, so equal scores always resolve to the same name
    return sorted(set(choices), key=lambda c: (name_token(c), c))


def best_match(
    query: str, choices: Iterable[str]
) -> Tuple[Optional[str], float]:
    """
    Return (best_choice, confidence) for a typed exercise name against the
    names a user has already logged.

    Ties go to the lexicographically smallest name.
    """
    best_choice = None
    best_score = -1.0

    for choice in _ordered(choices):
        score = similarity(query, choice)
        if score > best_score:
            best_score = score
            best_choice = choice

    if best_choice is None:
        return None, 0.0
    return best_choice, best_score


def resolve_name(
    candidate: str,
    vocabulary: Iterable[str],
    threshold: float = RESOLVE_THRESHOLD,
) -> Optional[str]:
    """
    Return the previously used name that `candidate` most likely means, or
    None when nothing scores at or above `threshold`.
    """
    match, score = best_match(candidate, vocabulary)
    if match is not None and score >= threshold:
        return match
    return None


def top_matches(
    query: str,
    choices: Iterable[str],
    limit: Optional[int] = SUGGEST_LIMIT,
    score_cutoff: float = SUGGEST_THRESHOLD,
) -> List[Tuple[str, float]]:
    """
    Return a list of (choice, confidence) sorted by confidence desc.

    Only matches with confidence >= score_cutoff are kept.
    """
    scored: List[Tuple[str, float]] = []
    for choice in _ordered(choices):
        score = similarity(query, choice)
        if score >= score_cutoff:
            scored.append((choice, score))

    # stable sort keeps lexicographic order among equal scores
    scored.sort(key=lambda x: x[1], reverse=True)
    if limit is not None:
        scored = scored[:limit]
    return scored


def suggest_names(
    query: str,
    vocabulary: Iterable[str],
    threshold: float = SUGGEST_THRESHOLD,
    limit: int = SUGGEST_LIMIT,
) -> List[str]:
    """Autocomplete candidates for a partially typed name."""
    query = (query or "").strip()
    if len(query) < MIN_QUERY_LENGTH:
        return []
    return [name for name, _ in top_matches(query, vocabulary, limit=limit, score_cutoff=threshold)]
