import asyncio
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from .api import jobs as jobs_api
from . import config
from .deps import get_queue
from .log import get_logger, setup_logging
from .metrics import error_count, metrics_response, request_latency_seconds
from .watchdog import run_watchdog

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    queue = get_queue()
    if not queue.running:
        await queue.start()
    watchdog = None
    if config.JOB_DEADLINE_SECONDS > 0:
        watchdog = asyncio.create_task(
            run_watchdog(queue.store, config.JOB_DEADLINE_SECONDS, config.WATCHDOG_POLL_SECONDS)
        )
    try:
        yield
    finally:
        if watchdog is not None:
            watchdog.cancel()
            await asyncio.gather(watchdog, return_exceptions=True)
        await queue.stop()


app = FastAPI(title="taskforge", lifespan=lifespan)

app.include_router(jobs_api.router)


@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    start = time.time()
    try:
        response = await call_next(request)
        return response
    except Exception:
        error_count.inc()
        logger.exception("unhandled error", path=request.url.path, method=request.method)
        raise
    finally:
        request_latency_seconds.observe(time.time() - start)


@app.get("/healthz")
async def healthz():
    return {"status": "ok"}


@app.get("/readyz")
async def readyz():
    queue = get_queue()
    return {"ready": queue.running, "workers": queue.workers}


@app.get("/metrics")
async def metrics():
    return metrics_response()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("taskforge.main:app", host="0.0.0.0", port=3000)
