# fraudscore/main.py
import logging
from datetime import timedelta

from fastapi import FastAPI
from redis import asyncio as aioredis
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from fraudscore.api.v1.router import api_router_v1
from fraudscore.core.config import Settings, settings
from fraudscore.core.logging import setup_logging
from fraudscore.core.rate_limit import limiter, rate_limit_exceeded_handler
from fraudscore.domain.services.fraud_analyzer import FraudAnalyzer
from fraudscore.domain.services.history_service import HistoryStore
from fraudscore.domain.services.signals_service import SignalGatherer
from fraudscore.infra.db.session import build_engine, build_sessionmaker, init_db
from fraudscore.infra.detectors.device_intel import DeviceIntelClient

logger = logging.getLogger(__name__)


def create_app(app_settings: Settings = settings) -> FastAPI:
    setup_logging(app_settings.LOG_LEVEL)

    app = FastAPI(
        title=app_settings.PROJECT_NAME,
        version=app_settings.PROJECT_VERSION,
    )

    # Rate limiting
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    # Collaborators, wired once per app
    engine = build_engine(app_settings.DATABASE_URL, echo=app_settings.SQL_ECHO)
    app.state.engine = engine
    app.state.sessionmaker = build_sessionmaker(engine)
    app.state.redis = (
        aioredis.from_url(app_settings.REDIS_URL, encoding="utf-8", decode_responses=True)
        if app_settings.REDIS_URL
        else None
    )
    app.state.device_intel = DeviceIntelClient(
        url=app_settings.DEVICE_INTEL_URL,
        api_key=app_settings.DEVICE_INTEL_API_KEY,
        cache_seconds=app_settings.DEVICE_INTEL_CACHE_SECONDS,
        max_cache_entries=app_settings.DEVICE_INTEL_CACHE_MAX_ENTRIES,
        request_timeout=app_settings.LOOKUP_TIMEOUT_SECONDS,
        redis=app.state.redis,
    )
    history = HistoryStore(app.state.sessionmaker)
    gatherer = SignalGatherer(
        history,
        app.state.device_intel,
        velocity_window=timedelta(minutes=app_settings.VELOCITY_WINDOW_MINUTES),
        timeout=app_settings.LOOKUP_TIMEOUT_SECONDS,
    )
    app.state.analyzer = FraudAnalyzer(
        gatherer,
        history,
        model_version=app_settings.MODEL_VERSION,
        similar_cases_window=timedelta(days=app_settings.SIMILAR_CASES_WINDOW_DAYS),
    )

    # Routers
    app.include_router(api_router_v1)

    @app.on_event("startup")
    async def on_startup() -> None:
        logger.info(f"🚀 {app_settings.PROJECT_NAME} starting ({app_settings.MODEL_VERSION})")
        await init_db(engine)

        if app.state.redis is not None:
            try:
                await app.state.redis.ping()
                logger.info("✅ Connected to Redis for device intel cache")
            except Exception as e:
                logger.error(f"❌ Error connecting to Redis: {e}")
                app.state.redis = None
                app.state.device_intel.redis = None

    @app.on_event("shutdown")
    async def on_shutdown() -> None:
        if app.state.redis is not None:
            await app.state.redis.aclose()
            logger.info("🔌 Disconnected from Redis")
        app.state.device_intel.session.close()
        await engine.dispose()
        logger.info("🛑 Shutting down")

    @app.get("/")
    async def root():
        return {
            "service": app_settings.PROJECT_NAME,
            "status": "ok",
            "model": app_settings.MODEL_VERSION,
            "endpoints": {
                "detect_fraud": "POST /api/v1/compliance/detect-fraud",
                "capabilities": "GET /api/v1/compliance/detect-fraud",
                "health": "GET /api/v1/health",
                "docs": "GET /docs",
            },
        }

    return app
