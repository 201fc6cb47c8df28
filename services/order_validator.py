from __future__ import annotations

from typing import List, Optional, Sequence

from app.models.feed_items import NormalizedItem, Parsed, ValidationOutcome


def check_parsable(items: Sequence[NormalizedItem]) -> List[str]:
    """One problem per item whose age could not be resolved."""
    problems: List[str] = []
    for item in items:
        if not item.is_parsable:
            problems.append(
                f"Unparsable timestamp for item #{item.position}: "
                f'"{item.title}" ({item.age_text}, ISO: {item.age_iso or "none"})'
            )
    return problems


def find_first_inversion(items: Sequence[NormalizedItem]) -> Optional[str]:
    """
    Walk adjacent pairs and describe the first one where a later item is
    strictly newer than the item before it. Equal instants are fine, and
    pairs with an unparsable side are skipped (reported by check_parsable).
    """
    for prev, curr in zip(items, items[1:]):
        if not (isinstance(prev.instant, Parsed) and isinstance(curr.instant, Parsed)):
            continue
        if prev.instant.at < curr.instant.at:
            return (
                f"Ordering issue between #{prev.position} and #{curr.position}: "
                f'"{prev.title}" ({prev.age_text}) appears before '
                f'"{curr.title}" ({curr.age_text}), but is older.'
            )
    return None


def validate(items: Sequence[NormalizedItem]) -> ValidationOutcome:
    parse_problems = check_parsable(items)
    ordering_problem = find_first_inversion(items)

    problems = list(parse_problems)
    if ordering_problem is not None:
        problems.append(ordering_problem)

    return ValidationOutcome(
        passed=not parse_problems and ordering_problem is None,
        problems=problems,
    )
