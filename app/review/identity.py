"""Reviewer identity matching.

Historical records store reviewer identity inconsistently: sometimes a
code (``DRAPL-001``), sometimes a full name, sometimes a partial name.
Every place that asks "is this assignment this reviewer's?" goes through
``matches()`` so the answer is the same on every screen.

Rules, strongest first
----------------------
1. exact id equality
2. exact name equality
3. candidate name contained in assignment name (case-insensitive)
4. assignment name contained in candidate name (case-insensitive)

Empty strings never match.  Substring hits on short fragments are a
known false-positive risk and are logged as warnings.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable
from enum import Enum
from typing import TypeVar

from app.review.models import ReviewerAssignment

logger = logging.getLogger(__name__)

AssignmentT = TypeVar("AssignmentT")

# Substring matches on fragments shorter than this are flagged.
DEFAULT_SHORT_NAME_LENGTH = 4


class MatchRule(str, Enum):
    ID = "id"
    NAME = "name"
    CANDIDATE_IN_ASSIGNMENT = "candidate_in_assignment"
    ASSIGNMENT_IN_CANDIDATE = "assignment_in_candidate"


# Lower rank is a stronger match.
_RULE_RANK: dict[MatchRule, int] = {rule: rank for rank, rule in enumerate(MatchRule)}


def _clean(value: object) -> str:
    if value is None:
        return ""
    return str(value).strip()


def match_rule(
    assignment_reviewer_id: str | None,
    assignment_reviewer_name: str | None,
    candidate_id: str | None,
    candidate_name: str | None,
) -> MatchRule | None:
    """Return the first rule under which the identities match, or None."""
    a_id = _clean(assignment_reviewer_id)
    a_name = _clean(assignment_reviewer_name)
    c_id = _clean(candidate_id)
    c_name = _clean(candidate_name)

    if a_id and a_id == c_id:
        return MatchRule.ID
    if a_name and a_name == c_name:
        return MatchRule.NAME
    if not a_name or not c_name:
        return None

    a_lower = a_name.casefold()
    c_lower = c_name.casefold()
    if c_lower in a_lower:
        return MatchRule.CANDIDATE_IN_ASSIGNMENT
    if a_lower in c_lower:
        return MatchRule.ASSIGNMENT_IN_CANDIDATE
    return None


def matches(
    assignment_reviewer_id: str | None,
    assignment_reviewer_name: str | None,
    candidate_id: str | None,
    candidate_name: str | None,
    *,
    short_name_length: int = DEFAULT_SHORT_NAME_LENGTH,
) -> bool:
    """Return True if the assignment's reviewer is the candidate reviewer."""
    rule = match_rule(
        assignment_reviewer_id,
        assignment_reviewer_name,
        candidate_id,
        candidate_name,
    )
    if rule is None:
        return False

    if rule is MatchRule.CANDIDATE_IN_ASSIGNMENT:
        fragment = _clean(candidate_name)
    elif rule is MatchRule.ASSIGNMENT_IN_CANDIDATE:
        fragment = _clean(assignment_reviewer_name)
    else:
        return True

    if len(fragment) < short_name_length:
        logger.warning(
            "Reviewer identity matched on short name fragment: rule=%s length=%d",
            rule.value,
            len(fragment),
        )
    return True


def assignment_matches(
    assignment: ReviewerAssignment,
    reviewer_id: str | None,
    reviewer_name: str | None,
    *,
    short_name_length: int = DEFAULT_SHORT_NAME_LENGTH,
) -> bool:
    """``matches()`` applied to a canonical assignment."""
    return matches(
        assignment.reviewer_id,
        assignment.reviewer_name,
        reviewer_id,
        reviewer_name,
        short_name_length=short_name_length,
    )


def find_match_index(
    identities: Iterable[tuple[str | None, str | None]],
    reviewer_id: str | None,
    reviewer_name: str | None,
    *,
    short_name_length: int = DEFAULT_SHORT_NAME_LENGTH,
) -> int | None:
    """Return the index of the (id, name) pair that best matches the reviewer.

    Pairs are ranked by the rule they match under, so an exact id hit
    anywhere in the list beats a substring hit earlier on.  Within the best
    rule the first pair wins and a tie is logged as ambiguous.
    """
    pairs = list(identities)
    ranked = []
    for index, (a_id, a_name) in enumerate(pairs):
        rule = match_rule(a_id, a_name, reviewer_id, reviewer_name)
        if rule is not None:
            ranked.append((_RULE_RANK[rule], index))
    if not ranked:
        return None

    best = min(rank for rank, _ in ranked)
    hits = [index for rank, index in ranked if rank == best]
    if len(hits) > 1:
        logger.warning(
            "Ambiguous reviewer identity: %d assignments matched, using index %d",
            len(hits),
            hits[0],
        )
    # Re-run through matches() for the short-fragment warning.
    a_id, a_name = pairs[hits[0]]
    matches(a_id, a_name, reviewer_id, reviewer_name, short_name_length=short_name_length)
    return hits[0]


def find_assignment(
    assignments: Iterable[AssignmentT],
    reviewer_id: str | None,
    reviewer_name: str | None,
    *,
    short_name_length: int = DEFAULT_SHORT_NAME_LENGTH,
) -> AssignmentT | None:
    """Return the canonical assignment best matching the reviewer, or None."""
    items = list(assignments)
    index = find_match_index(
        ((a.reviewer_id, a.reviewer_name) for a in items),
        reviewer_id,
        reviewer_name,
        short_name_length=short_name_length,
    )
    return None if index is None else items[index]
