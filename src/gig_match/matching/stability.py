"""Stability audit for a proposer -> reviewer matching.

Works only from the matching and the preference lists, never from solver
state, so it can be used as an oracle against the solver.
"""

import logging

from gig_match.errors import InvalidSpecification
from gig_match.models.matching import BlockingPair, StabilityReport

logger = logging.getLogger(__name__)


def verify_stability(
    matching: dict[str, str],
    proposer_prefs: dict[str, list[str]],
    reviewer_prefs: dict[str, list[str]],
) -> StabilityReport:
    """Find every blocking pair in a matching.

    A proposer and a reviewer block when the proposer ranks the reviewer above
    its current partner (any listed reviewer if unmatched) and the reviewer is
    either unmatched and lists the proposer, or ranks the proposer above its
    current partner.

    Args:
        matching: Proposer id -> reviewer id.
        proposer_prefs: Reviewer ids per proposer, best first.
        reviewer_prefs: Proposer ids per reviewer, best first.

    Returns:
        StabilityReport listing blocking pairs in proposer id order.

    Raises:
        InvalidSpecification: If two proposers share a reviewer.
    """
    partner_of_reviewer: dict[str, str] = {}
    for proposer_id, reviewer_id in matching.items():
        if reviewer_id in partner_of_reviewer:
            raise InvalidSpecification(
                f"Reviewer {reviewer_id} is matched to both "
                f"{partner_of_reviewer[reviewer_id]} and {proposer_id}"
            )
        partner_of_reviewer[reviewer_id] = proposer_id

    reviewer_rank = {
        rid: {pid: position for position, pid in enumerate(prefs)}
        for rid, prefs in reviewer_prefs.items()
    }

    blocking: list[BlockingPair] = []
    for proposer_id in sorted(proposer_prefs):
        prefs = proposer_prefs[proposer_id]
        partner = matching.get(proposer_id)
        preferred = prefs[: prefs.index(partner)] if partner in prefs else prefs

        for reviewer_id in preferred:
            ranks = reviewer_rank.get(reviewer_id, {})
            if proposer_id not in ranks:
                continue

            holder = partner_of_reviewer.get(reviewer_id)
            if holder is None:
                blocking.append(
                    BlockingPair(
                        proposer_id=proposer_id,
                        reviewer_id=reviewer_id,
                        reason="reviewer_unmatched",
                    )
                )
            elif ranks[proposer_id] < ranks.get(holder, len(ranks)):
                blocking.append(
                    BlockingPair(
                        proposer_id=proposer_id,
                        reviewer_id=reviewer_id,
                        reason="mutual_preference",
                    )
                )

    if blocking:
        logger.warning(f"Matching has {len(blocking)} blocking pairs")
    return StabilityReport(is_stable=not blocking, blocking_pairs=blocking)
