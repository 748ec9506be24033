"""FastAPI application entrypoint for the crypto-to-fiat transfer wizard."""

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware

from offramp.config import get_settings
from offramp.lib.logger import configure_logging
from offramp.lib.metrics import METRICS
from offramp.lib.rate_limiter import RateLimiter
from offramp.transfers.routes import router as transfers_router
from offramp.transfers.store import WizardStore

settings = get_settings()

configure_logging()
app = FastAPI(title="Offramp", version="0.1.0")
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.secret_key_salt,
    same_site="lax",
    https_only=settings.env == "prod",
)

app.state.metrics = METRICS
app.state.rate_limiter = RateLimiter()
app.state.rate_limit_per_minute = settings.request_rate_limit_per_minute
app.state.wizard_store = WizardStore(
    ttl_seconds=settings.wizard_ttl_seconds,
    max_sessions=settings.wizard_max_sessions,
)

app.include_router(transfers_router, prefix="/transfer", tags=["transfer"])


@app.get("/health", tags=["system"], summary="Health check")
async def health_check() -> JSONResponse:
    """Return liveness response for uptime monitoring."""
    return JSONResponse({"ok": True, "data": {"status": "healthy"}})


@app.get("/metrics", tags=["system"], summary="Metrics endpoint")
async def metrics_endpoint() -> JSONResponse:
    return JSONResponse({"ok": True, "data": METRICS.snapshot()})
