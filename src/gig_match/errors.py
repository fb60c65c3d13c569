"""Error taxonomy for the matching core.

Provider- and pair-level errors are absorbed where they happen and recorded
as degradation markers. Algorithm-level errors travel back to the orchestrator
as values so it can walk its fallback chain. Only ``InvalidSpecification``
is raised out of the public entry points.
"""

from typing import Any


class MatchingError(Exception):
    """Base class for all matching errors."""

    code = "matching_error"

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        """Structured form for responses and logs."""
        return {"code": self.code, "message": self.message, "details": self.details}


class ScoringProviderUnavailable(MatchingError):
    """Semantic similarity provider is absent, failing or too slow."""

    code = "scoring_provider_unavailable"


class PreferenceBuildPartialFailure(MatchingError):
    """Scoring failed for a single pair; a neutral score was substituted."""

    code = "preference_build_partial_failure"


class SolverIterationLimitReached(MatchingError):
    """Deferred acceptance hit its iteration bound before terminating."""

    code = "solver_iteration_limit_reached"


class AlgorithmFailure(MatchingError):
    """A matching strategy could not produce a result."""

    code = "algorithm_failure"


class DeadlineExceeded(AlgorithmFailure):
    """The run deadline passed while work was still outstanding."""

    code = "deadline_exceeded"


class InvalidSpecification(MatchingError):
    """Malformed proposer, reviewer or configuration input."""

    code = "invalid_specification"
