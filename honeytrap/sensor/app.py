from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.routing import APIRouter
from loguru import logger
from sse_starlette.sse import AppStatus

from honeytrap.sensor.devices import DeviceTable
from honeytrap.sensor.hub import BroadcastHub
from honeytrap.sensor.log import setup_logging
from honeytrap.sensor.models.api import ApiError
from honeytrap.sensor.pipeline.aggregator import Aggregator
from honeytrap.sensor.pipeline.capture import CaptureError, CaptureService
from honeytrap.sensor.pipeline.enrichment import GeoClient
from honeytrap.sensor.pipeline.policy import OutcomePolicy, RandomInterceptPolicy
from honeytrap.sensor.settings import HoneySettings, get_settings
from honeytrap.sensor.store.memory import BoundedEventStore


def init_state(
    app: FastAPI,
    settings: HoneySettings,
    *,
    geo: GeoClient | None = None,
    policy: OutcomePolicy | None = None,
) -> None:
    """Build the sensor singletons and attach them to ``app.state``.

    Called by the lifespan; tests call it directly to swap in a stub geo
    client or a deterministic policy.
    """
    store = BoundedEventStore()
    devices = DeviceTable.with_defaults()
    hub = BroadcastHub(
        store,
        queue_size=settings.subscriber_queue_size,
        bootstrap_size=settings.bootstrap_size,
    )
    if geo is None:
        geo = GeoClient(settings.geo_base_url, settings.geo_timeout, enabled=settings.geo_enabled)
    if policy is None:
        policy = RandomInterceptPolicy(settings.intercept_probability)

    app.state.settings = settings
    app.state.store = store
    app.state.devices = devices
    app.state.hub = hub
    app.state.geo = geo
    app.state.aggregator = Aggregator(store)
    app.state.capture = CaptureService(store=store, devices=devices, hub=hub, policy=policy, geo=geo)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    # -- Startup ---------------------------------------------------------------
    settings = get_settings()
    setup_logging(settings.log_level, hit_level=settings.hit_log_level)

    logger.info("Honeytrap sensor starting (host={}, port={})", settings.host, settings.port)
    AppStatus.should_exit = False
    init_state(_app, settings)
    logger.info(
        "Capture: intercept_probability={}, geo={} (timeout={}s)",
        settings.intercept_probability,
        settings.geo_base_url if settings.geo_enabled else "disabled",
        settings.geo_timeout,
    )
    logger.info(
        "Store: capacity={} (retention_days={} is not enforced; count-based eviction only)",
        _app.state.store.capacity,
        settings.retention_days,
    )

    yield

    # -- Shutdown --------------------------------------------------------------
    hub: BroadcastHub = _app.state.hub
    logger.info("Honeytrap sensor shutting down (subscribers={})", hub.subscriber_count)

    # 1. End live streams so WebSocket / SSE handlers return.
    hub.close()

    # 2. Signal sse-starlette streams to close.
    AppStatus.should_exit = True
    logger.info("SSE: signalled streams to close")

    # Close the enrichment HTTP client (returns pooled connections).
    await _app.state.geo.aclose()
    logger.info("Geo client: closed")


app = FastAPI(title="Honeytrap Sensor", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "x-forwarded-for"],
)


async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    """Render capture failures and any unhandled error as the generic 500 envelope."""
    logger.opt(exception=exc).error("Unhandled error on {} {}", request.method, request.url.path)
    settings: HoneySettings | None = getattr(request.app.state, "settings", None)
    body = ApiError(
        error="Internal server error",
        message=str(exc) if settings is not None and settings.debug else None,
    )
    return JSONResponse(body.model_dump(exclude_none=True), status_code=500)


# CaptureError goes through the regular exception middleware; the catch-all
# Exception handler is invoked by Starlette's server-error middleware.
app.add_exception_handler(CaptureError, handle_unexpected)
app.add_exception_handler(Exception, handle_unexpected)


# ---------------------------------------------------------------------------
# API router -- all read / live endpoints live under /api
# ---------------------------------------------------------------------------
api = APIRouter(prefix="/api")

from honeytrap.sensor.routers.attacks import router as attacks_router  # noqa: E402
from honeytrap.sensor.routers.decoys import routes as decoy_routes  # noqa: E402
from honeytrap.sensor.routers.devices import router as devices_router  # noqa: E402
from honeytrap.sensor.routers.live import router as live_router  # noqa: E402
from honeytrap.sensor.routers.system import health_payload  # noqa: E402
from honeytrap.sensor.routers.system import router as system_router  # noqa: E402

api.include_router(system_router)
api.include_router(attacks_router)
api.include_router(devices_router)
api.include_router(live_router)

app.include_router(api)

# Decoys sit outside /api so they look like device endpoints.
app.router.routes.extend(decoy_routes)


@app.get("/")
async def root() -> dict[str, str]:
    return health_payload()
