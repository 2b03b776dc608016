from taskforge.cache import ResponseCache


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_miss_then_hit():
    cache = ResponseCache(default_ttl=10, clock=FakeClock())
    assert cache.get("/jobs/1") is None
    cache.set("/jobs/1", {"state": "completed"})
    assert cache.get("/jobs/1") == {"state": "completed"}


def test_entries_expire_after_ttl():
    clock = FakeClock()
    cache = ResponseCache(default_ttl=10, clock=clock)
    cache.set("a", 1)
    cache.set("b", 2, ttl=30)

    clock.now += 9.9
    assert cache.get("a") == 1
    clock.now += 0.1
    assert cache.get("a") is None
    assert cache.get("b") == 2
    assert len(cache) == 1

    clock.now += 20
    assert cache.purge_expired() == 1
    assert len(cache) == 0


def test_set_overwrites_and_resets_ttl():
    clock = FakeClock()
    cache = ResponseCache(default_ttl=5, clock=clock)
    cache.set("k", "old")
    clock.now += 4
    cache.set("k", "new")
    clock.now += 4
    assert cache.get("k") == "new"


def test_delete_and_clear():
    cache = ResponseCache(default_ttl=5, clock=FakeClock())
    cache.set("a", 1)
    cache.set("b", 2)
    cache.delete("a")
    cache.delete("missing")
    assert cache.get("a") is None
    cache.clear()
    assert len(cache) == 0
