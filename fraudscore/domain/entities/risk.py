# fraudscore/domain/entities/risk.py
import math
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional, Tuple

Severity = Literal["low", "medium", "high", "critical"]
Action = Literal["BLOCK", "INVESTIGATE", "REVIEW", "MONITOR", "APPROVE"]


@dataclass(frozen=True)
class Location:
    country: Optional[str] = None
    city: Optional[str] = None


@dataclass(frozen=True)
class TransactionRiskInput:
    transaction_id: Optional[str]
    user_id: Optional[str]
    amount: Optional[Decimal]
    currency: Optional[str] = None
    merchant_category: Optional[str] = None
    location: Optional[Location] = None
    device_fingerprint: Optional[str] = None
    ip_address: Optional[str] = None
    timestamp: Optional[datetime] = None


@dataclass(frozen=True)
class DeviceSignals:
    """What is known about the device behind a transaction."""

    known_device: bool = False
    vpn_detected: bool = False
    emulator_detected: bool = False


@dataclass(frozen=True)
class RiskSignals:
    """Collaborator data for the velocity and device heuristics.

    `device=None` means no device data at all (no fingerprint, or the lookup
    failed); the device heuristic then treats the device as unrecognized.
    """

    recent_transaction_count: int = 0
    device: Optional[DeviceSignals] = None
    degraded: Tuple[str, ...] = ()


@dataclass(frozen=True)
class RiskFactor:
    name: str
    weight: float
    score: int
    severity: Severity
    description: str

    @property
    def weighted_score(self) -> int:
        # half-up, like the aggregate score
        return math.floor(self.score * self.weight + 0.5)

    @property
    def slug(self) -> str:
        return "_".join(self.name.lower().split())


@dataclass(frozen=True)
class RiskAssessment:
    is_fraudulent: bool
    fraud_score: int
    recommended_action: Action
    evidence: List[RiskFactor]
    patterns: List[str]
    factors: List[RiskFactor] = field(default_factory=list)
