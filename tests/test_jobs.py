import asyncio
import pytest

from taskforge import deps

HEADERS = {"X-API-Key": "dev-key"}


async def poll(client, job_id, timeout=5.0):
    for _ in range(int(timeout / 0.02)):
        res = await client.get(f"/jobs/{job_id}")
        assert res.status_code == 200
        body = res.json()
        if body["state"] in ("completed", "failed"):
            return body
        await asyncio.sleep(0.02)
    raise AssertionError(f"job {job_id} did not finish")


@pytest.mark.asyncio
async def test_submit_requires_api_key(client):
    res = await client.post("/jobs", json={"type": "email_send", "payload": {}})
    assert res.status_code == 401
    res = await client.post("/jobs", json={"type": "email_send", "payload": {}}, headers={"X-API-Key": "wrong"})
    assert res.status_code == 403


@pytest.mark.asyncio
async def test_submit_and_poll_report(client):
    res = await client.post("/reports", json={"user_id": "42"}, headers=HEADERS)
    assert res.status_code == 202
    body = res.json()
    assert body["state"] == "pending"
    job_id = body["job_id"]

    data = await poll(client, job_id)
    assert data["state"] == "completed"
    assert data["type"] == "report_generate"
    assert data["result"]["completed"] is True
    assert data["result"]["report_type"] == "activity"
    assert "error" not in data


@pytest.mark.asyncio
async def test_email_shortcut(client):
    res = await client.post(
        "/emails", json={"to": "a@b.com", "content": "hello"}, headers=HEADERS
    )
    assert res.status_code == 202
    data = await poll(client, res.json()["job_id"])
    assert data["result"] == {"delivered": True, "to": "a@b.com"}


@pytest.mark.asyncio
async def test_unknown_type_is_rejected(client, queue):
    res = await client.post("/jobs", json={"type": "nope", "payload": {}}, headers=HEADERS)
    assert res.status_code == 400
    assert len(queue.store) == 0


@pytest.mark.asyncio
async def test_unknown_job_is_404(client):
    res = await client.get("/jobs/999")
    assert res.status_code == 404


@pytest.mark.asyncio
async def test_failed_job_and_resubmit(client):
    res = await client.post("/jobs", json={"type": "email_send", "payload": {}}, headers=HEADERS)
    job_id = res.json()["job_id"]

    data = await poll(client, job_id)
    assert data["state"] == "failed"
    assert data["error"]["type"] == "ProcessingError"
    assert "result" not in data

    rr = await client.post(f"/jobs/{job_id}/resubmit", headers=HEADERS)
    assert rr.status_code == 202
    assert rr.json()["job_id"] != job_id

    missing = await client.post("/jobs/999/resubmit", headers=HEADERS)
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_resubmit_of_completed_job_conflicts(client):
    res = await client.post("/emails", json={"to": "a@b.com", "content": "x"}, headers=HEADERS)
    job_id = res.json()["job_id"]
    await poll(client, job_id)

    rr = await client.post(f"/jobs/{job_id}/resubmit", headers=HEADERS)
    assert rr.status_code == 409


@pytest.mark.asyncio
async def test_terminal_status_is_served_from_cache(client):
    res = await client.post("/emails", json={"to": "a@b.com", "content": "x"}, headers=HEADERS)
    job_id = res.json()["job_id"]
    first = await poll(client, job_id)

    cache = deps.get_cache()
    assert cache.get(f"/jobs/{job_id}") is not None
    second = await client.get(f"/jobs/{job_id}")
    assert second.json() == first


@pytest.mark.asyncio
async def test_list_and_stats(client):
    ids = []
    for _ in range(3):
        res = await client.post("/emails", json={"to": "a@b.com", "content": "x"}, headers=HEADERS)
        ids.append(res.json()["job_id"])
    for job_id in ids:
        await poll(client, job_id)

    listed = await client.get("/jobs", params={"state": "completed"})
    assert listed.status_code == 200
    assert sorted(j["job_id"] for j in listed.json()["jobs"]) == sorted(ids)

    stats = await client.get("/jobs/stats")
    body = stats.json()
    assert body["counts"]["completed"] == 3
    assert body["queue_depth"] == 0
    assert body["workers"] == deps.get_queue().workers


@pytest.mark.asyncio
async def test_health_endpoints(client):
    assert (await client.get("/healthz")).json() == {"status": "ok"}
    ready = await client.get("/readyz")
    assert ready.json()["ready"] is True


@pytest.mark.asyncio
async def test_evicted_job_is_not_served_from_cache(client):
    res = await client.post("/emails", json={"to": "a@b.com", "content": "x"}, headers=HEADERS)
    job_id = res.json()["job_id"]
    await poll(client, job_id)
    assert (await client.get(f"/jobs/{job_id}")).status_code == 200

    await asyncio.sleep(0.01)
    assert deps.evict_finished(older_than=0) == 1
    assert (await client.get(f"/jobs/{job_id}")).status_code == 404
