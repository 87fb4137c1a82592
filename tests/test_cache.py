import uuid
from datetime import timedelta

from app.core.cache import PrincipalCache
from app.core.clock import utcnow
from app.core.policy import Principal


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def _principal(expires_in=timedelta(hours=1), principal_id=None):
    return Principal(
        id=principal_id or uuid.uuid4(),
        kind="member",
        username="asmith",
        expires_at=utcnow() + expires_in,
    )


def test_entry_expires_after_ttl():
    clock = FakeClock()
    cache = PrincipalCache(ttl_seconds=30, clock=clock)
    p = _principal()
    cache.put("tok", p)

    clock.now += 29
    assert cache.get("tok") is p

    clock.now += 1
    assert cache.get("tok") is None
    assert len(cache) == 0


def test_entry_dropped_when_token_expired():
    cache = PrincipalCache(ttl_seconds=30, clock=FakeClock())
    cache.put("tok", _principal(expires_in=timedelta(seconds=-1)))
    assert cache.get("tok") is None


def test_invalidate_by_token_and_by_principal():
    cache = PrincipalCache(ttl_seconds=30, clock=FakeClock())
    shared_id = uuid.uuid4()
    cache.put("a", _principal(principal_id=shared_id))
    cache.put("b", _principal(principal_id=shared_id))
    cache.put("c", _principal())

    cache.invalidate_token("c")
    assert cache.get("c") is None

    assert cache.invalidate_principal(shared_id) == 2
    assert cache.get("a") is None
    assert cache.get("b") is None


def test_zero_ttl_disables_cache():
    cache = PrincipalCache(ttl_seconds=0, clock=FakeClock())
    cache.put("tok", _principal())
    assert not cache.enabled
    assert cache.get("tok") is None
    assert len(cache) == 0
