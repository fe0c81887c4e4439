# fraudscore/api/v1/endpoints/fraud.py
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from fraudscore.api.deps import get_fraud_analyzer
from fraudscore.api.mappers import map_analysis
from fraudscore.core.config import settings
from fraudscore.core.errors import MalformedRequestError
from fraudscore.core.rate_limit import limiter
from fraudscore.domain.services.fraud_analyzer import FraudAnalyzer
from fraudscore.infra.detectors.risk_model import describe_capabilities
from fraudscore.schemas.fraud_schemas import (
    CapabilitiesResponse,
    ErrorResponse,
    FraudDetectionRequest,
    FraudDetectionResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/compliance", tags=["compliance"])


@router.post(
    "/detect-fraud",
    response_model=FraudDetectionResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="Score a transaction for fraud risk",
)
@limiter.limit(settings.RATE_LIMIT)
async def detect_fraud(
    request: Request,
    body: FraudDetectionRequest,
    analyzer: FraudAnalyzer = Depends(get_fraud_analyzer),
):
    """
    Runs the six-factor risk analysis (amount, velocity, geography, device,
    merchant category, time of day) and returns the normalized score, the
    recommended action and the evidence behind it.
    """
    tx = body.to_domain()
    try:
        analysis = await analyzer.analyze(tx)
    except MalformedRequestError as e:
        logger.info(f"Rejected request, missing {', '.join(e.missing)}")
        return JSONResponse(status_code=400, content={"error": str(e)})
    except Exception:
        logger.exception("❌ Fraud detection error")
        return JSONResponse(status_code=500, content={"error": "Failed to detect fraud"})

    return map_analysis(tx, analysis)


@router.get("/detect-fraud", response_model=CapabilitiesResponse, summary="Describe the scoring model")
async def fraud_capabilities():
    return describe_capabilities(settings.MODEL_VERSION)
