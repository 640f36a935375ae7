"""
Helpers for presenting compiler errors to a human: "did you mean" suggestions
and batch rendering of collected diagnostics.
"""

from typing import Iterable, Optional, Sequence

from .config import SUGGESTION_MAX_DISTANCE
from .exceptions import DampenError


def levenshtein(s1: str, s2: str) -> int:
    """Minimum number of single-character insertions, deletions or substitutions turning `s1` into `s2`."""
    if len(s1) < len(s2):
        return levenshtein(s2, s1)
    if len(s2) == 0:
        return len(s1)

    previous_row = list(range(len(s2) + 1))
    for i, c1 in enumerate(s1):
        current_row = [i + 1]
        for j, c2 in enumerate(s2):
            insertions = previous_row[j + 1] + 1
            deletions = current_row[j] + 1
            substitutions = previous_row[j] + (c1 != c2)
            current_row.append(min(insertions, deletions, substitutions))
        previous_row = current_row
    return previous_row[-1]


def closest_match(target: str, candidates: Iterable[str], max_distance: int = SUGGESTION_MAX_DISTANCE) -> Optional[str]:
    """
    Returns the candidate closest to `target`, or None when nothing is within `max_distance`.
    Ties are broken by candidate order; an exact match is never suggested.
    """
    best: Optional[str] = None
    best_distance = max_distance + 1
    for candidate in candidates:
        if candidate == target:
            continue
        distance = levenshtein(target, candidate)
        if distance < best_distance:
            best, best_distance = candidate, distance
    return best


def render_diagnostics(errors: Sequence[DampenError]) -> str:
    """Renders a batch of diagnostics, one block per error, in source order."""
    ordered = sorted(
        errors,
        key=lambda e: (e.span.start_line, e.span.start_col) if e.span else (0, 0),
    )
    return "\n".join(error.render() for error in ordered)
