from __future__ import annotations

import fnmatch
import itertools
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterator, List, Optional

import pytest
import redis

from resume_store.config import Settings
from resume_store.db.session import Database
from resume_store.telemetry import TelemetryEvent, clear_listeners, register_listener

FIXED_NOW = datetime(2026, 3, 14, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime = FIXED_NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> datetime:
        self.now = self.now + timedelta(**delta)
        return self.now


class FakeRedis:
    """In-memory stand-in for the subset of ``redis.Redis`` the store uses."""

    def __init__(self) -> None:
        self.data: Dict[str, bytes] = {}
        self.ttls: Dict[str, Optional[int]] = {}
        self.expire_at: Dict[str, int] = {}
        self.delete_calls: List[tuple[str, ...]] = []
        self.closed = False

    def ping(self) -> bool:
        return True

    def get(self, key: str) -> Optional[bytes]:
        return self.data.get(key)

    def set(self, key: str, value: Any, ex: Optional[int] = None) -> bool:
        self.data[key] = value if isinstance(value, bytes) else str(value).encode()
        self.ttls[key] = ex
        return True

    def delete(self, *keys: str) -> int:
        self.delete_calls.append(keys)
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
        return removed

    def scan_iter(self, match: str = "*", count: Optional[int] = None) -> Iterator[str]:
        for key in list(self.data):
            if fnmatch.fnmatchcase(key, match):
                yield key

    def incr(self, key: str) -> int:
        value = int(self.data.get(key, b"0")) + 1
        self.data[key] = str(value).encode()
        return value

    def expireat(self, key: str, when: datetime) -> bool:
        self.expire_at[key] = int(when.timestamp())
        return True

    def pipeline(self) -> "FakePipeline":
        return FakePipeline(self)

    def close(self) -> None:
        self.closed = True


class FakePipeline:
    def __init__(self, client: FakeRedis) -> None:
        self._client = client
        self._calls: List[tuple[str, tuple[Any, ...]]] = []

    def incr(self, key: str) -> "FakePipeline":
        self._calls.append(("incr", (key,)))
        return self

    def expireat(self, key: str, when: datetime) -> "FakePipeline":
        self._calls.append(("expireat", (key, when)))
        return self

    def execute(self) -> List[Any]:
        return [getattr(self._client, name)(*args) for name, args in self._calls]


class BrokenRedis(FakeRedis):
    """Every command fails as if the server went away."""

    def _fail(self, *args: Any, **kwargs: Any) -> Any:
        raise redis.ConnectionError("connection refused")

    ping = get = set = delete = incr = expireat = _fail

    def scan_iter(self, match: str = "*", count: Optional[int] = None) -> Iterator[str]:
        raise redis.ConnectionError("connection refused")

    def pipeline(self) -> "FakePipeline":
        raise redis.ConnectionError("connection refused")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite:///{tmp_path / 'store.sqlite'}"


@pytest.fixture
def database(database_url: str) -> Iterator[Database]:
    db = Database(database_url)
    db.create_all()
    yield db
    db.dispose()


@pytest.fixture
def id_factory():
    counter = itertools.count(1)
    return lambda: f"00000000-0000-0000-0000-{next(counter):012d}"


@pytest.fixture
def settings(database_url: str) -> Settings:
    return Settings(RESUME_DATABASE_URL=database_url, REDIS_ENABLED=False)  # type: ignore[call-arg]


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def events() -> Iterator[List[TelemetryEvent]]:
    captured: List[TelemetryEvent] = []
    unregister = register_listener(captured.append)
    yield captured
    unregister()
    clear_listeners()


@pytest.fixture
def broken_redis() -> BrokenRedis:
    return BrokenRedis()
