# app/transport/http_app.py
"""
HTTP application: health, metrics and the Telegram webhook.

In polling mode the same process runs the getUpdates loop from the
lifespan; in webhook mode Telegram POSTs updates to /webhooks/telegram.
"""
from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from app.config import settings, Settings
from app.core.engine.finalizer import SignupFinalizer
from app.core.engine.intake import AttachmentIntake
from app.core.engine.use_cases import OnboardingEngine
from app.infra.db_async import close_pool, init_pool
from app.infra.http_client import close_all_sessions
from app.infra.logging_config import LogContext, get_logger, setup_logging
from app.infra.media_fetcher import HttpBinaryFetcher
from app.infra.memory_session_store import InMemorySessionStore
from app.infra.metrics import get_metrics_collector, inc_counter
from app.infra.pg_record_store_async import PostgresRecordStore
from app.infra.s3_storage import S3ObjectStorage, UnconfiguredObjectStorage
from app.infra.supabase_auth import SupabaseIdentityProvider, UnconfiguredIdentityProvider
from app.transport.adapters import TelegramAdapter
from app.transport.middleware import RequestIDMiddleware, RequestLoggingMiddleware
from app.transport.security import require_metrics_auth, verify_telegram_secret
from app.transport.telegram_polling import TelegramPoller
from app.transport.telegram_sender import TelegramTransport

setup_logging(level=settings.log_level, use_json=settings.is_production)

logger = get_logger(__name__)


# ============================================================================
# WIRING
# ============================================================================

def build_engine(cfg: Settings, transport: TelegramTransport) -> OnboardingEngine:
    """Assemble the engine from configured collaborators."""
    if cfg.identity_enabled:
        identity = SupabaseIdentityProvider(cfg.supabase_url, cfg.supabase_service_role_key)
    else:
        identity = UnconfiguredIdentityProvider()

    storage = S3ObjectStorage.from_settings(cfg) if cfg.storage_enabled else UnconfiguredObjectStorage()

    return OnboardingEngine(
        sessions=InMemorySessionStore(default_language=cfg.default_language),
        transport=transport,
        identity=identity,
        intake=AttachmentIntake(
            transport=transport,
            fetcher=HttpBinaryFetcher(),
            storage=storage,
            bucket=cfg.storage_bucket,
        ),
        finalizer=SignupFinalizer(PostgresRecordStore(), cfg.profiles_table),
    )


# ============================================================================
# LIFESPAN
# ============================================================================

@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    """Application lifecycle: startup and shutdown"""
    logger.info("Starting application: env=%s, telegram_mode=%s", settings.app_env, settings.telegram_mode)

    if settings.database_url:
        await init_pool()
    else:
        logger.warning("DATABASE_URL not set: profile listing will fail and be reported to users")

    fastapi_app.state.engine = None
    fastapi_app.state.poller = None

    if settings.telegram_enabled:
        transport = TelegramTransport(settings.telegram_bot_token)
        engine = build_engine(settings, transport)
        fastapi_app.state.engine = engine

        if settings.telegram_mode == "polling":
            poller = TelegramPoller(engine, transport, poll_timeout=settings.telegram_poll_timeout)
            await poller.start()
            fastapi_app.state.poller = poller
        elif settings.telegram_webhook_url:
            await transport.set_webhook(settings.telegram_webhook_url, settings.telegram_webhook_secret)
            logger.info("Webhook registered: %s", settings.telegram_webhook_url)
        else:
            logger.info("Webhook mode: expecting updates on /webhooks/telegram")
    else:
        logger.warning("TELEGRAM_BOT_TOKEN not set: bot is disabled")

    yield

    logger.info("Shutting down application")
    if fastapi_app.state.poller is not None:
        await fastapi_app.state.poller.stop()
    await close_all_sessions()
    await close_pool()


# ============================================================================
# CREATE APP
# ============================================================================

app = FastAPI(
    title="Job Seeker Onboarding Bot",
    version="1.0.0",
    lifespan=lifespan,
    docs_url=None if settings.is_production else "/docs",
    redoc_url=None,
    openapi_url=None if settings.is_production else "/openapi.json",
)

app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(RequestIDMiddleware)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    if exc.status_code >= 500:
        logger.error("Server error: %s", exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)


# ============================================================================
# ENDPOINTS
# ============================================================================

@app.get("/health")
def health(request: Request):
    """Liveness check - PUBLIC."""
    return {
        "status": "healthy",
        "bot_enabled": getattr(request.app.state, "engine", None) is not None,
    }


@app.get("/metrics", dependencies=[Depends(require_metrics_auth)])
def metrics():
    return get_metrics_collector().get_metrics()


@app.post("/webhooks/telegram")
async def webhook_telegram(request: Request):
    """
    Telegram Bot API webhook - PUBLIC but VALIDATED.

    Always answers 200 once authenticated so Telegram does not redeliver;
    processing failures are reported to the user by the engine.
    """
    if not verify_telegram_secret(request, settings.telegram_webhook_secret):
        logger.error("Telegram webhook: secret token verification failed")
        inc_counter("webhook_validation_failures_total", provider="telegram")
        raise HTTPException(status_code=403, detail="Invalid secret token")

    engine: OnboardingEngine | None = getattr(request.app.state, "engine", None)
    if engine is None:
        raise HTTPException(status_code=503, detail="Bot is not configured")

    try:
        payload = await request.json()
    except ValueError:
        logger.warning("Telegram webhook: invalid JSON payload, returning 200 to suppress retries")
        inc_counter("telegram_webhook_malformed_payload")
        return {"ok": True}

    request_id = getattr(request.state, "request_id", None)
    processed = 0
    for message in TelegramAdapter().adapt_update(payload):
        result = await engine.process_inbound_message(message)
        LogContext(logger, user_id=message.user_id, request_id=request_id).debug(
            "Telegram webhook processed: step=%s", result["step"]
        )
        processed += 1

    return {"ok": True, "processed": processed}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.transport.http_app:app",
        host="0.0.0.0",
        port=8099,
        log_level=settings.log_level.lower(),
        access_log=not settings.is_production,
        server_header=False,
    )
