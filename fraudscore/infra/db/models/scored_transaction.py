# fraudscore/infra/db/models/scored_transaction.py
from sqlalchemy import Boolean, Column, DateTime, Integer, Numeric, String, Text, func

from fraudscore.infra.db.base import Base


class ScoredTransaction(Base):
    __tablename__ = "scored_transactions"

    id = Column(Integer, primary_key=True)

    # Client-supplied values are stored unbounded; the request schema does not cap them
    transaction_id = Column(Text, nullable=False, index=True)
    user_id = Column(Text, nullable=False, index=True)
    tx_timestamp_utc = Column(DateTime, nullable=False, server_default=func.now(), index=True)

    amount = Column(Numeric(18, 2), nullable=False)
    currency = Column(Text)
    merchant_category = Column(Text, index=True)
    country = Column(Text, index=True)
    city = Column(Text)
    device_fingerprint = Column(Text, index=True)
    ip_address = Column(Text)

    # Assessment results
    fraud_score = Column(Integer, nullable=False)
    recommended_action = Column(String(16), nullable=False)
    is_fraudulent = Column(Boolean, nullable=False, default=False)
    risk_factors = Column(String(255))
    analyzed_at = Column(DateTime, server_default=func.now())
