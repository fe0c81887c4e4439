# fraudscore/schemas/fraud_schemas.py
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from fraudscore.domain.entities.risk import Location, TransactionRiskInput


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ==========================================================
#   REQUEST
# ==========================================================

class LocationIn(CamelModel):
    country: Optional[str] = Field(None, examples=["US"])
    city: Optional[str] = Field(None, examples=["Austin"])


class FraudDetectionRequest(CamelModel):
    """
    Transaction to score. transactionId, userId and amount are required;
    their absence is reported as a 400 by the endpoint rather than as a
    schema error, so they are declared optional here.
    """

    transaction_id: Optional[str] = Field(None, examples=["tx_0001"])
    user_id: Optional[str] = Field(None, examples=["user_42"])
    amount: Optional[Decimal] = Field(None, ge=0, examples=[149.99])
    currency: Optional[str] = Field(None, examples=["USD"])
    merchant_category: Optional[str] = Field(None, examples=["electronics"])
    location: Optional[LocationIn] = None
    device_fingerprint: Optional[str] = None
    ip_address: Optional[str] = None
    timestamp: Optional[datetime] = None

    def to_domain(self) -> TransactionRiskInput:
        return TransactionRiskInput(
            transaction_id=self.transaction_id,
            user_id=self.user_id,
            amount=self.amount,
            currency=self.currency,
            merchant_category=self.merchant_category,
            location=Location(self.location.country, self.location.city) if self.location else None,
            device_fingerprint=self.device_fingerprint,
            ip_address=self.ip_address,
            timestamp=self.timestamp,
        )


# ==========================================================
#   RESPONSE
# ==========================================================

class EvidenceOut(CamelModel):
    type: str
    description: str
    severity: float  # 1-10 scale


class RiskFactorOut(CamelModel):
    name: str
    score: int
    weight: float
    weighted_score: int
    severity: str
    description: str


class AnalysisOut(CamelModel):
    transaction_id: str
    user_id: str
    amount: float
    timestamp: datetime
    total_risk_score: int
    confidence: int
    model_version: str
    processing_time_ms: int
    degraded_signals: List[str] = []


class FraudDetectionResponse(CamelModel):
    is_fraudulent: bool
    fraud_score: int
    recommended_action: str
    patterns: List[str]
    evidence: List[EvidenceOut]
    similar_cases: int
    factors: List[RiskFactorOut]
    analysis: AnalysisOut


class ErrorResponse(BaseModel):
    error: str


class CapabilitiesResponse(CamelModel):
    status: str
    model: str
    capabilities: List[str]
    risk_thresholds: Dict[str, int]
