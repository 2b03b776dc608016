import asyncio
import os
import time

import pytest
from httpx import ASGITransport, AsyncClient

os.environ["API_KEY"] = "dev-key"
os.environ["EMAIL_SEND_SECONDS"] = "0.01"
os.environ["REPORT_GENERATE_SECONDS"] = "0.05"

from taskforge import deps
from taskforge.main import app as fastapi_app

TERMINAL = ("completed", "failed")


async def _wait_terminal(queue, job_id, timeout=5.0):
    deadline = time.monotonic() + timeout
    while True:
        status = queue.status(job_id)
        if status["state"] in TERMINAL:
            return status
        if time.monotonic() > deadline:
            raise AssertionError(f"job {job_id} still {status['state']} after {timeout}s")
        await asyncio.sleep(0.01)


@pytest.fixture
def wait_terminal():
    return _wait_terminal


@pytest.fixture
async def queue():
    """The app's job queue singleton with its worker pool running."""
    deps.reset()
    q = deps.get_queue()
    await q.start()
    yield q
    await q.stop()
    deps.reset()


@pytest.fixture
async def client(queue):
    async with AsyncClient(transport=ASGITransport(app=fastapi_app), base_url="http://testserver") as ac:
        yield ac
