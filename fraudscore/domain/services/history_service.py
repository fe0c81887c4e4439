# fraudscore/domain/services/history_service.py
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from fraudscore.domain.entities.risk import RiskAssessment, TransactionRiskInput
from fraudscore.infra.db.models.scored_transaction import ScoredTransaction


def to_utc_naive(moment: datetime) -> datetime:
    """Rows are stored as naive UTC."""
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(timezone.utc).replace(tzinfo=None)


class HistoryStore:
    """
    Transaction history backing the velocity and device heuristics.

    Each call opens its own session so lookups can run concurrently.
    A resubmitted transaction adds a row per attempt; counts are over
    distinct transaction ids.
    """

    def __init__(self, sessionmaker: async_sessionmaker[AsyncSession]):
        self._sessionmaker = sessionmaker

    async def count_recent_transactions(
        self,
        user_id: str,
        until: datetime,
        window: timedelta,
        exclude_transaction_id: Optional[str] = None,
    ) -> int:
        until = to_utc_naive(until)
        stmt = (
            select(func.count(func.distinct(ScoredTransaction.transaction_id)))
            .where(ScoredTransaction.user_id == user_id)
            .where(ScoredTransaction.tx_timestamp_utc >= until - window)
            .where(ScoredTransaction.tx_timestamp_utc <= until)
        )
        if exclude_transaction_id:
            stmt = stmt.where(ScoredTransaction.transaction_id != exclude_transaction_id)

        async with self._sessionmaker() as db:
            return int((await db.execute(stmt)).scalar_one())

    async def is_known_device(self, user_id: str, fingerprint: str) -> bool:
        stmt = (
            select(ScoredTransaction.id)
            .where(ScoredTransaction.user_id == user_id)
            .where(ScoredTransaction.device_fingerprint == fingerprint)
            .limit(1)
        )
        async with self._sessionmaker() as db:
            return (await db.execute(stmt)).first() is not None

    async def count_similar_cases(
        self,
        merchant_category: Optional[str],
        country: Optional[str],
        since: datetime,
        exclude_transaction_id: Optional[str] = None,
    ) -> int:
        """Previously flagged transactions sharing the category or the country."""
        criteria = []
        if merchant_category:
            criteria.append(func.lower(ScoredTransaction.merchant_category) == merchant_category.strip().lower())
        if country:
            criteria.append(ScoredTransaction.country == country.strip().upper())
        if not criteria:
            return 0

        stmt = (
            select(func.count(func.distinct(ScoredTransaction.transaction_id)))
            .where(ScoredTransaction.is_fraudulent.is_(True))
            .where(ScoredTransaction.tx_timestamp_utc >= to_utc_naive(since))
            .where(or_(*criteria))
        )
        if exclude_transaction_id:
            stmt = stmt.where(ScoredTransaction.transaction_id != exclude_transaction_id)

        async with self._sessionmaker() as db:
            return int((await db.execute(stmt)).scalar_one())

    async def record_assessment(
        self,
        tx: TransactionRiskInput,
        assessment: RiskAssessment,
        moment: datetime,
    ) -> ScoredTransaction:
        location = tx.location
        row = ScoredTransaction(
            transaction_id=tx.transaction_id,
            user_id=tx.user_id,
            tx_timestamp_utc=to_utc_naive(moment),
            amount=tx.amount,
            currency=tx.currency,
            merchant_category=tx.merchant_category,
            country=((location.country or "").strip().upper() or None) if location else None,
            city=location.city if location else None,
            device_fingerprint=tx.device_fingerprint,
            ip_address=tx.ip_address,
            fraud_score=assessment.fraud_score,
            recommended_action=assessment.recommended_action,
            is_fraudulent=assessment.is_fraudulent,
            risk_factors=",".join(f.slug for f in assessment.evidence),
            analyzed_at=to_utc_naive(datetime.now(timezone.utc)),
        )

        async with self._sessionmaker() as db:
            db.add(row)
            await db.commit()
            await db.refresh(row)
        return row
