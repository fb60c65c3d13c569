"""Deferred acceptance (Gale-Shapley) over precomputed preference lists.

Proposers propose in preference order; each reviewer tentatively holds the
best acceptable proposal seen so far. The result is stable and optimal for
the proposing side.
"""

import logging
from collections import deque
from dataclasses import dataclass, field

from gig_match.errors import InvalidSpecification, SolverIterationLimitReached

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITERATIONS = 1000


@dataclass
class SolverResult:
    """Matching (proposer id -> reviewer id) plus run bookkeeping."""

    matching: dict[str, str] = field(default_factory=dict)
    iterations: int = 0
    warning: SolverIterationLimitReached | None = None

    @property
    def completed(self) -> bool:
        return self.warning is None


class GaleShapleySolver:
    """Proposer-optimal stable matching.

    State lives in dense integer arrays: ids are sorted and indexed once per
    run, ``match_of`` and ``holder_of`` are fixed-size lists, and reviewer
    rankings are precomputed so each proposal is compared in constant time.
    """

    def __init__(self, max_iterations: int = DEFAULT_MAX_ITERATIONS) -> None:
        if max_iterations < 1:
            raise InvalidSpecification(f"max_iterations must be >= 1, got {max_iterations}")
        self.max_iterations = max_iterations

    def solve(
        self,
        proposer_prefs: dict[str, list[str]],
        reviewer_prefs: dict[str, list[str]],
    ) -> SolverResult:
        """Run deferred acceptance.

        Args:
            proposer_prefs: Reviewer ids per proposer, best first.
            reviewer_prefs: Proposer ids per reviewer, best first. Proposers
                missing from a reviewer's list are unacceptable to it.

        Returns:
            SolverResult. When the iteration bound is hit, the partial
            matching is returned with a ``SolverIterationLimitReached`` warning.

        Raises:
            InvalidSpecification: If a list references an unknown id or
                repeats one.
        """
        proposer_ids = sorted(proposer_prefs)
        reviewer_ids = sorted(reviewer_prefs)
        proposer_index = {pid: i for i, pid in enumerate(proposer_ids)}
        reviewer_index = {rid: i for i, rid in enumerate(reviewer_ids)}

        prefs = [
            _index_list(pid, proposer_prefs[pid], reviewer_index, "reviewer")
            for pid in proposer_ids
        ]

        # rank[r][p] is p's position in r's list; len(proposer_ids) marks unacceptable
        unacceptable = len(proposer_ids)
        rank = []
        for rid in reviewer_ids:
            row = [unacceptable] * len(proposer_ids)
            for position, p in enumerate(
                _index_list(rid, reviewer_prefs[rid], proposer_index, "proposer")
            ):
                row[p] = position
            rank.append(row)

        next_choice = [0] * len(proposer_ids)
        match_of: list[int | None] = [None] * len(proposer_ids)
        holder_of: list[int | None] = [None] * len(reviewer_ids)
        queue = deque(range(len(proposer_ids)))

        iterations = 0
        warning = None
        while queue:
            p = queue[0]
            if next_choice[p] >= len(prefs[p]):
                # Exhausted: stays unmatched
                queue.popleft()
                continue

            if iterations >= self.max_iterations:
                warning = SolverIterationLimitReached(
                    f"Stopped after {iterations} proposals with {len(queue)} proposers pending",
                    iterations=iterations,
                    pending=len(queue),
                )
                logger.warning(warning.message)
                break

            r = prefs[p][next_choice[p]]
            next_choice[p] += 1
            iterations += 1

            if rank[r][p] == unacceptable:
                continue

            current = holder_of[r]
            if current is None:
                holder_of[r] = p
                match_of[p] = r
                queue.popleft()
            elif rank[r][p] < rank[r][current]:
                logger.debug(
                    f"{reviewer_ids[r]} trades {proposer_ids[current]} for {proposer_ids[p]}"
                )
                holder_of[r] = p
                match_of[p] = r
                match_of[current] = None
                queue.popleft()
                queue.append(current)

        matching = {
            proposer_ids[p]: reviewer_ids[r] for p, r in enumerate(match_of) if r is not None
        }
        logger.info(
            f"Deferred acceptance matched {len(matching)}/{len(proposer_ids)} proposers "
            f"in {iterations} proposals"
        )
        return SolverResult(matching=matching, iterations=iterations, warning=warning)


def _index_list(
    owner: str,
    ids: list[str],
    index: dict[str, int],
    side: str,
) -> list[int]:
    seen: set[int] = set()
    indexed = []
    for other_id in ids:
        if other_id not in index:
            raise InvalidSpecification(
                f"Preference list of {owner} references unknown {side} '{other_id}'",
                owner=owner,
                unknown=other_id,
            )
        position = index[other_id]
        if position in seen:
            raise InvalidSpecification(
                f"Preference list of {owner} repeats {side} '{other_id}'",
                owner=owner,
                duplicate=other_id,
            )
        seen.add(position)
        indexed.append(position)
    return indexed
