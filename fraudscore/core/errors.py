# fraudscore/core/errors.py
"""
Error taxonomy for the scoring service.

- MalformedRequestError: the caller left out a required field. Client error,
  never retried automatically.
- LookupUnavailableError: a collaborator (history store, device intelligence)
  could not answer. The heuristic that depends on it degrades to its
  no-data default; the assessment itself still succeeds.
"""

from typing import Iterable


class FraudScoreError(Exception):
    """Base class for service errors."""


class MalformedRequestError(FraudScoreError, ValueError):
    """Required transaction fields are missing."""

    def __init__(self, missing: Iterable[str]):
        self.missing = list(missing)
        super().__init__("transactionId, userId, and amount are required")


class LookupUnavailableError(FraudScoreError):
    """A collaborator lookup failed or timed out."""

    def __init__(self, source: str, reason: str = ""):
        self.source = source
        self.reason = reason
        super().__init__(f"{source} unavailable: {reason}" if reason else f"{source} unavailable")
