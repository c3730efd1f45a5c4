import logging

from statuswatch.config.logging_config import setup_logging

# Set up logging at the start of the module
setup_logging()
logger = logging.getLogger(__name__)
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request, Response
from fastapi.responses import ORJSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from statuswatch.config.config import Config
from statuswatch.core.batch_coordinator import BatchCoordinator
from statuswatch.core.cors_middleware import CorsMiddleware
from statuswatch.core.metrics_manager import MetricsManager
from statuswatch.core.prober import Prober
from statuswatch.core.result_cache import InMemoryResultCache
from statuswatch.core.status_handler import StatusHandler

metrics_manager = MetricsManager()
result_cache = InMemoryResultCache()


def new_probe_client() -> httpx.AsyncClient:
    # One pooled client for every probe; certificate checks follow config
    return httpx.AsyncClient(verify=Config.PROBE_VERIFY_TLS)


prober = Prober(new_probe_client(), metrics_manager=metrics_manager)
coordinator = BatchCoordinator(prober, result_cache, metrics_manager=metrics_manager)
status_handler = StatusHandler(coordinator)


@asynccontextmanager
async def lifespan(app):
    # A previous shutdown closed the pool; probes need a live one again
    if prober.client.is_closed:
        prober.client = new_probe_client()
    logger.info(
        f"Status engine starting: cache_ttl={Config.CACHE_TTL_MS}ms "
        f"probe_timeout={Config.PROBE_TIMEOUT_MS}ms verify_tls={Config.PROBE_VERIFY_TLS}"
    )
    yield
    await prober.client.aclose()


app = FastAPI(lifespan=lifespan, default_response_class=ORJSONResponse)

app.middleware("http")(metrics_manager.prometheus_middleware)
# Added last so it wraps everything, including faults raised by inner middleware
app.add_middleware(CorsMiddleware)


@app.get("/health")
async def health():
    return {"status": "ok", "cached_targets": len(result_cache)}


@app.get("/metrics")
def metrics():
    return Response(generate_latest(metrics_manager.registry), media_type=CONTENT_TYPE_LATEST)


# Every method but POST (and OPTIONS, answered by CorsMiddleware) gets the informational reply
@app.api_route(Config.API_PATH, methods=["GET", "HEAD", "POST", "PUT", "DELETE", "PATCH"])
async def status(request: Request):
    return await status_handler.handle_status(request)
