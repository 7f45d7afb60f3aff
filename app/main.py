"""
FastAPI application: routers, error rendering, rate limiting and timing.
"""
from fastapi import FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from timing_asgi import TimingMiddleware, TimingClient  # type: ignore
from timing_asgi.integrations import StarletteScopeToName  # type: ignore

from app.core import config
from app.core.database.engine import dispose_db, init_db
from app.core.exceptions import AccessEngineError
from app.features.access.routes import router as access_router
from app.features.entitlements.routes import router as entitlement_router
from app.features.organizations.routes import router as organization_router
from app.features.profiles.routes import router as profile_router
from app.features.ui.routes import router as navigation_router
from app.features.units.routes import router as unit_router
from app.features.users.dependencies import get_authorization_header
from app.features.users.routes import router as user_router
from app.utils import get_logger


VERSION = "0.1.0"

log = get_logger(__name__)
log.info("Starting property access engine")
app = FastAPI(
    title="Property Access Engine",
    description="Profile permissions, plan features and quotas for property management",
    version=VERSION,
    docs_url="/docs" if config.ENABLE_DOCS else None,
    redoc_url="/redoc" if config.ENABLE_DOCS else None,
    openapi_url="/openapi.json" if config.ENABLE_DOCS else None
)

# Keyed on the bearer token so one noisy user cannot starve the others
app.state.limiter = Limiter(key_func=get_authorization_header)


class LogTimings(TimingClient):
    def timing(self, metric_name, timing, tags):
        log.debug(dict(route=metric_name.removeprefix("main.app.features."), timing=timing, tags=tags))


app.add_middleware(TimingMiddleware, client=LogTimings(), metric_namer=StarletteScopeToName("main", app))

if config.ENABLE_DOCS:
    log.warning("API docs are public")
if config.ALLOW_ORIGIN:
    log.warning("CORS origin: %s", config.ALLOW_ORIGIN)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[config.ALLOW_ORIGIN],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


# ============================================================================
# Error rendering
# ============================================================================

@app.exception_handler(RequestValidationError)
async def request_validation_handler(_request: Request, exc: RequestValidationError):
    """Malformed bodies and params: 400 with a field -> message map."""
    errors = {}
    for error in exc.errors():
        if "loc" not in error or "msg" not in error:
            continue
        key = error["loc"][-1]
        errors["root" if key == "__root__" else key] = error["msg"]
    log.info("Rejected request body %s", errors)
    return JSONResponse(status_code=400, content=jsonable_encoder(errors))


@app.exception_handler(AccessEngineError)
async def access_engine_error_handler(_request: Request, exc: AccessEngineError):
    """Denials, unknown subjects, invalid permission writes and exhausted quotas."""
    log.info("%s: %s", exc.kind, exc.detail)
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_dict()))


@app.exception_handler(RateLimitExceeded)
def rate_limit_exceeded_handler(_request: Request, _exc: RateLimitExceeded) -> Response:
    return JSONResponse({"error": "rate_limited", "detail": "Too many requests"}, status_code=429)


# ============================================================================
# Lifecycle
# ============================================================================

@app.on_event("startup")
async def startup():
    await init_db()


@app.on_event("shutdown")
async def shutdown():
    await dispose_db()


@app.get("/")
async def root():
    """Service banner."""
    return {
        "message": "Property Access Engine API",
        "version": VERSION,
        "status": "online",
        "docs": "/docs" if config.ENABLE_DOCS else None,
        "authentication": "Bearer token required on every route except / and /health",
        "resources": sorted(prefix.strip("/") for prefix, _router, _tag in ROUTERS),
    }


@app.get("/health")
async def health():
    return {"status": "healthy"}


# ============================================================================
# Routers
# ============================================================================

ROUTERS = (
    ("/users", user_router, "users"),
    ("/organizations", organization_router, "organizations"),
    ("/profiles", profile_router, "profiles"),
    ("/access", access_router, "access"),
    ("/navigation", navigation_router, "navigation"),
    ("/entitlements", entitlement_router, "entitlements"),
    ("/units", unit_router, "units"),
)

for prefix, router, tag in ROUTERS:
    app.include_router(router, prefix=prefix, tags=[tag])

# Singular alias used by older clients calling /user/me
app.include_router(user_router, prefix="/user", tags=["users"], include_in_schema=False)
