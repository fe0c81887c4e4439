# fraudscore/domain/services/fraud_analyzer.py
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from fraudscore.domain.entities.risk import RiskAssessment, RiskSignals, TransactionRiskInput
from fraudscore.domain.services.history_service import HistoryStore
from fraudscore.domain.services.signals_service import SignalGatherer
from fraudscore.infra.detectors.risk_model import assess, round_half_up, validate_required

logger = logging.getLogger(__name__)

CONFIDENCE_BASE = 85
CONFIDENCE_SPAN = 10


@dataclass(frozen=True)
class FraudAnalysis:
    assessment: RiskAssessment
    signals: RiskSignals
    similar_cases: int
    confidence: int
    model_version: str
    processing_time_ms: int
    analyzed_at: datetime


def estimate_confidence(tx: TransactionRiskInput, signals: RiskSignals) -> int:
    """85-95, growing with how much of the input could actually be checked."""
    checks = [
        tx.location is not None,
        bool(tx.device_fingerprint),
        "velocity" not in signals.degraded,
        signals.device is not None,
    ]
    return CONFIDENCE_BASE + round_half_up(CONFIDENCE_SPAN * sum(checks) / len(checks))


class FraudAnalyzer:
    """
    Runs one transaction through signal gathering, scoring and recording.

    Only MalformedRequestError escapes; collaborator failures are absorbed
    by the gatherer and by the recording step.
    """

    def __init__(
        self,
        gatherer: SignalGatherer,
        history: HistoryStore,
        model_version: str,
        similar_cases_window: timedelta = timedelta(days=30),
    ):
        self.gatherer = gatherer
        self.history = history
        self.model_version = model_version
        self.similar_cases_window = similar_cases_window

    async def _similar_cases(self, tx: TransactionRiskInput, assessment: RiskAssessment, moment: datetime) -> int:
        if not assessment.is_fraudulent:
            return 0
        country = tx.location.country if tx.location else None
        value, _ = await self.gatherer.bounded(
            "similar_cases",
            self.history.count_similar_cases(
                tx.merchant_category,
                country,
                since=moment - self.similar_cases_window,
                exclude_transaction_id=tx.transaction_id,
            ),
        )
        return int(value or 0)

    async def _record(self, tx: TransactionRiskInput, assessment: RiskAssessment, moment: datetime) -> None:
        _, ok = await self.gatherer.bounded("record", self.history.record_assessment(tx, assessment, moment))
        if not ok:
            logger.warning(f"⚠️ Assessment {tx.transaction_id} not recorded; later velocity checks will miss it")

    async def analyze(self, tx: TransactionRiskInput) -> FraudAnalysis:
        validate_required(tx)
        started = time.perf_counter()

        moment = tx.timestamp or datetime.now().astimezone()

        # 1) Collaborator signals (velocity, device)
        signals = await self.gatherer.gather(tx, moment)

        # 2) Scoring
        assessment = assess(tx, signals, now=moment)

        # 3) Similar flagged cases
        similar_cases = await self._similar_cases(tx, assessment, moment)

        # 4) History for future velocity / device checks
        await self._record(tx, assessment, moment)

        elapsed_ms = round((time.perf_counter() - started) * 1000)

        logger.info(
            f"✅ Assessed {tx.transaction_id} (user {tx.user_id}): "
            f"score={assessment.fraud_score} action={assessment.recommended_action}"
            + (f" degraded={','.join(signals.degraded)}" if signals.degraded else "")
        )

        return FraudAnalysis(
            assessment=assessment,
            signals=signals,
            similar_cases=similar_cases,
            confidence=estimate_confidence(tx, signals),
            model_version=self.model_version,
            processing_time_ms=elapsed_ms,
            analyzed_at=datetime.now(timezone.utc),
        )
