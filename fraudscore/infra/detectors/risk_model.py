# fraudscore/infra/detectors/risk_model.py

import logging
import math
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from fraudscore.core.errors import MalformedRequestError
from fraudscore.domain.entities.risk import (
    Action,
    DeviceSignals,
    Location,
    RiskAssessment,
    RiskFactor,
    RiskSignals,
    TransactionRiskInput,
)

logger = logging.getLogger(__name__)

# ==========================================================
#  FIXED CONFIGURATION
# ==========================================================

HIGH_RISK_COUNTRIES = frozenset({"NG", "RU", "CN", "IR", "KP"})
MODERATE_RISK_COUNTRIES = frozenset({"BR", "IN", "PH", "UA", "VN"})

HIGH_RISK_CATEGORIES = frozenset({"gambling", "crypto", "adult", "wire_transfer"})
MODERATE_RISK_CATEGORIES = frozenset({"travel", "jewelry", "electronics"})

ODD_HOURS = range(1, 6)  # 1 AM - 5 AM local

FRAUD_THRESHOLD = 60

# Evaluated top-down; first match wins
ACTION_THRESHOLDS: List[tuple[int, Action]] = [
    (80, "BLOCK"),
    (60, "INVESTIGATE"),
    (40, "REVIEW"),
    (20, "MONITOR"),
    (0, "APPROVE"),
]

CAPABILITIES = [
    "amount-analysis",
    "velocity-detection",
    "geographic-risk",
    "device-fingerprinting",
    "merchant-risk",
    "time-pattern-analysis",
]

# Patterns keep factors strictly above this raw score
PATTERN_SCORE_CUTOFF = 30
EVIDENCE_SEVERITIES = frozenset({"high", "critical"})


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


# ==========================================================
#  HEURISTICS
# ==========================================================

def analyze_amount(amount: Decimal) -> RiskFactor:
    if amount > 10000:
        score, severity, description = 80, "high", "High-value transaction exceeds $10,000 threshold"
    elif amount > 5000:
        score, severity, description = 50, "medium", "Elevated transaction amount ($5,000+)"
    elif amount > 1000:
        score, severity, description = 20, "low", "Moderate transaction amount"
    else:
        score, severity, description = 0, "low", "Transaction amount within normal range"

    return RiskFactor("Amount Analysis", 0.25, score, severity, description)


def analyze_velocity(recent_transactions: int) -> RiskFactor:
    if recent_transactions > 7:
        score, severity = 90, "critical"
        description = f"High velocity: {recent_transactions} transactions in last hour"
    elif recent_transactions > 4:
        score, severity = 60, "high"
        description = f"Elevated velocity: {recent_transactions} transactions recently"
    elif recent_transactions > 2:
        score, severity = 30, "medium"
        description = "Slightly elevated transaction frequency"
    else:
        score, severity, description = 0, "low", "Normal transaction frequency"

    return RiskFactor("Velocity Analysis", 0.2, score, severity, description)


def analyze_geography(location: Optional[Location]) -> RiskFactor:
    country = (location.country or "").strip().upper() if location else ""

    if country in HIGH_RISK_COUNTRIES:
        score, severity = 85, "high"
        description = f"Transaction from high-risk region: {country}"
    elif country in MODERATE_RISK_COUNTRIES:
        score, severity = 45, "medium"
        description = f"Transaction from moderate-risk region: {country}"
    elif location is None:
        score, severity = 30, "medium"
        description = "Location data unavailable - cannot verify"
    else:
        # Unknown or blank country codes are risk-neutral
        score, severity, description = 0, "low", "Transaction from trusted location"

    return RiskFactor("Geographic Analysis", 0.2, score, severity, description)


def analyze_device(device: Optional[DeviceSignals]) -> RiskFactor:
    device = device or DeviceSignals()

    if device.emulator_detected:
        score, severity = 95, "critical"
        description = "Transaction from emulated/virtual device"
    elif device.vpn_detected:
        score, severity = 60, "high"
        description = "VPN/proxy detected - identity masking suspected"
    elif not device.known_device:
        score, severity = 40, "medium"
        description = "New or unrecognized device"
    else:
        score, severity, description = 0, "low", "Known trusted device"

    return RiskFactor("Device Analysis", 0.15, score, severity, description)


def analyze_merchant(category: Optional[str]) -> RiskFactor:
    normalized = (category or "").strip().lower()

    if normalized in HIGH_RISK_CATEGORIES:
        score, severity = 70, "high"
        description = f"High-risk merchant category: {category}"
    elif normalized in MODERATE_RISK_CATEGORIES:
        score, severity = 35, "medium"
        description = f"Elevated-risk merchant category: {category}"
    else:
        score, severity, description = 0, "low", "Standard merchant category"

    return RiskFactor("Merchant Analysis", 0.1, score, severity, description)


def analyze_time_pattern(moment: datetime) -> RiskFactor:
    if moment.hour in ODD_HOURS:
        score, severity = 40, "medium"
        description = "Transaction during unusual hours (1-5 AM)"
    else:
        score, severity, description = 0, "low", "Transaction during normal hours"

    return RiskFactor("Time Pattern Analysis", 0.1, score, severity, description)


# ==========================================================
#  AGGREGATION
# ==========================================================

def normalize_score(factors: List[RiskFactor]) -> int:
    """Weighted sum over the maximum achievable weighted sum, as 0-100."""
    total = sum(f.score * f.weight for f in factors)
    max_possible = sum(100 * f.weight for f in factors)
    if max_possible <= 0:
        return 0
    return max(0, min(100, round_half_up(total / max_possible * 100)))


def determine_action(score: int) -> Action:
    for threshold, action in ACTION_THRESHOLDS:
        if score >= threshold:
            return action
    return "APPROVE"


def validate_required(tx: TransactionRiskInput) -> None:
    missing = []
    if not tx.transaction_id:
        missing.append("transactionId")
    if not tx.user_id:
        missing.append("userId")
    if tx.amount is None:
        missing.append("amount")
    if missing:
        raise MalformedRequestError(missing)


def evaluate_factors(
    tx: TransactionRiskInput,
    signals: RiskSignals,
    moment: datetime,
) -> List[RiskFactor]:
    return [
        analyze_amount(Decimal(tx.amount)),
        analyze_velocity(signals.recent_transaction_count),
        analyze_geography(tx.location),
        analyze_device(signals.device),
        analyze_merchant(tx.merchant_category),
        analyze_time_pattern(moment),
    ]


def assess(
    tx: TransactionRiskInput,
    signals: Optional[RiskSignals] = None,
    *,
    now: Optional[datetime] = None,
) -> RiskAssessment:
    """
    Scores one transaction across the six heuristics.

    `signals` carries the velocity count and device verdicts gathered from
    collaborators; when omitted the scorer assumes no history and no device
    data. The time heuristic reads the hour of `tx.timestamp`, falling back
    to `now` (or the local wall clock).

    Raises MalformedRequestError when transaction_id, user_id or amount is
    missing. Nothing else raises.
    """
    validate_required(tx)

    signals = signals or RiskSignals()
    moment = tx.timestamp or now or datetime.now().astimezone()

    factors = evaluate_factors(tx, signals, moment)
    score = normalize_score(factors)
    action = determine_action(score)

    # Two independent filters; they may disagree for the same factor
    evidence = [f for f in factors if f.severity in EVIDENCE_SEVERITIES]
    patterns = [f.description for f in factors if f.score > PATTERN_SCORE_CUTOFF]

    logger.debug(
        "Scored %s for user %s: %s (%s)",
        tx.transaction_id, tx.user_id, score, action,
    )

    return RiskAssessment(
        is_fraudulent=score >= FRAUD_THRESHOLD,
        fraud_score=score,
        recommended_action=action,
        evidence=evidence,
        patterns=patterns,
        factors=factors,
    )


def describe_capabilities(model_version: str) -> Dict[str, Any]:
    return {
        "status": "operational",
        "model": model_version,
        "capabilities": list(CAPABILITIES),
        "risk_thresholds": {action.lower(): threshold for threshold, action in ACTION_THRESHOLDS},
    }
