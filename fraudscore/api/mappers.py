# fraudscore/api/mappers.py
"""
Domain (dataclasses) → API (Pydantic)
"""
from fraudscore.domain.entities.risk import RiskFactor, TransactionRiskInput
from fraudscore.domain.services.fraud_analyzer import FraudAnalysis
from fraudscore.schemas.fraud_schemas import (
    AnalysisOut,
    EvidenceOut,
    FraudDetectionResponse,
    RiskFactorOut,
)


def map_factor(factor: RiskFactor) -> RiskFactorOut:
    return RiskFactorOut(
        name=factor.name,
        score=factor.score,
        weight=factor.weight,
        weighted_score=factor.weighted_score,
        severity=factor.severity,
        description=factor.description,
    )


def map_evidence(factor: RiskFactor) -> EvidenceOut:
    return EvidenceOut(
        type=factor.slug,
        description=factor.description,
        severity=factor.score / 10,
    )


def map_analysis(tx: TransactionRiskInput, analysis: FraudAnalysis) -> FraudDetectionResponse:
    assessment = analysis.assessment
    return FraudDetectionResponse(
        is_fraudulent=assessment.is_fraudulent,
        fraud_score=assessment.fraud_score,
        recommended_action=assessment.recommended_action,
        patterns=list(assessment.patterns),
        evidence=[map_evidence(f) for f in assessment.evidence],
        similar_cases=analysis.similar_cases,
        factors=[map_factor(f) for f in assessment.factors],
        analysis=AnalysisOut(
            transaction_id=tx.transaction_id,
            user_id=tx.user_id,
            amount=float(tx.amount),
            timestamp=analysis.analyzed_at,
            total_risk_score=assessment.fraud_score,
            confidence=analysis.confidence,
            model_version=analysis.model_version,
            processing_time_ms=analysis.processing_time_ms,
            degraded_signals=list(analysis.signals.degraded),
        ),
    )
