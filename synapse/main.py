import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from supabase import Client

from synapse.config import settings
from synapse.core.errors import FunctionError
from synapse.core.logging_config import configure_logging
from synapse.database.supabase_client import get_service_supabase
from synapse.modules.billing import routes as billing_routes
from synapse.modules.connections import routes as connections_routes
from synapse.modules.team import routes as team_routes
from synapse.modules.transcription import routes as transcription_routes

configure_logging()
logger = logging.getLogger(__name__)

FUNCTIONS_PREFIX = "/functions/v1"

# Headers the browser client sends on every function call
FUNCTION_HEADERS = ["authorization", "x-client-info", "apikey", "content-type"]

SECURITY_HEADERS = [
    (b"X-Content-Type-Options", b"nosniff"),
    (b"X-Frame-Options", b"DENY"),
]

INTEGRATIONS = {
    "evolution": ("evolution_api_url", "evolution_api_key"),
    "n8n": ("n8n_api_url", "n8n_api_key"),
    "stripe": ("stripe_secret_key",),
    "whisper": ("openai_api_key",),
}


def configured_integrations() -> dict:
    return {name: all(getattr(settings, f) for f in fields) for name, fields in INTEGRATIONS.items()}


@asynccontextmanager
async def lifespan(app: FastAPI):
    missing = [name for name, ok in configured_integrations().items() if not ok]
    logger.info(f"Starting {settings.app_name} ({settings.environment})")
    if missing:
        logger.warning(f"Integrations without credentials: {', '.join(missing)}")
    yield
    logger.info("Application shutdown")


limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit])
app = FastAPI(
    title=settings.app_name,
    debug=settings.debug,
    redirect_slashes=False,
    lifespan=lifespan,
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(FunctionError)
async def function_error_handler(request: Request, exc: FunctionError):
    function_name = request.url.path.rsplit("/", 1)[-1].upper()
    logger.error(f"[{function_name}] {exc.status_code} {exc.error}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception: %s", exc)
    message = "Internal server error" if settings.is_production else str(exc)
    return JSONResponse(status_code=500, content={"error": message})


class SecurityHeadersMiddleware:
    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_with_headers(message):
            if message["type"] == "http.response.start":
                message.setdefault("headers", []).extend(SECURITY_HEADERS)
            await send(message)

        await self.app(scope, receive, send_with_headers)


cors_origins = settings.get_cors_origins_list()
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    # browsers refuse credentialed responses for a wildcard origin
    allow_credentials="*" not in cors_origins,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=FUNCTION_HEADERS,
)

for module in (billing_routes, team_routes, connections_routes, transcription_routes):
    app.include_router(module.router, prefix=FUNCTIONS_PREFIX)


@app.get("/")
async def root():
    return {"service": settings.app_name, "functions": FUNCTIONS_PREFIX}


@app.get("/health")
@limiter.exempt
async def health():
    return {"status": "healthy"}


@app.get("/ready")
@limiter.exempt
async def ready(supabase: Client = Depends(get_service_supabase)):
    """Ready when the database answers with the service key"""
    try:
        supabase.table("workspaces").select("id").limit(1).execute()
    except Exception as e:
        logger.warning(f"Readiness check failed: {e}")
        return JSONResponse(status_code=503, content={"status": "unavailable", "error": str(e)})
    return {"status": "ready", "integrations": configured_integrations()}
