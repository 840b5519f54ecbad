# wms/main.py

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from wms import models  # noqa: F401  registers all tables on Base
from wms.core.logging_config import configure_logging
from wms.routes import health, scheduler as scheduler_routes, sync
from wms.scheduler import start_scheduler, stop_scheduler

configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    await start_scheduler()
    try:
        yield  # This is where the app runs
    finally:
        await stop_scheduler()

app = FastAPI(
    title="WMS Sellus Sync",
    lifespan=lifespan
)

# Add middleware to handle HTTPS behind proxy
@app.middleware("http")
async def proxy_headers_middleware(request: Request, call_next):
    forwarded_proto = request.headers.get("x-forwarded-proto")
    if forwarded_proto == "https":
        request.scope["scheme"] = "https"
    response = await call_next(request)
    return response

app.include_router(sync.router)
app.include_router(scheduler_routes.router)
app.include_router(health.router)
