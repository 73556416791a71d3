import pytest

from watchclub.auth.verify import auth_dependency
from watchclub.config import settings

CRON_SECRET = "test-cron-secret"


@pytest.fixture
def auth_override():
    def _override():
        return {"sub": "user-123"}

    return _override


class FakeRedis:
    def __init__(self):
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int | None] = {}

    async def set_with_ttl(self, key: str, value: str, ttl_s: int | None = None) -> bool:
        self.store[key] = value
        self.ttls[key] = ttl_s
        return True

    async def get(self, key: str) -> str | None:
        return self.store.get(key)

    async def delete(self, key: str) -> bool:
        self.ttls.pop(key, None)
        return self.store.pop(key, None) is not None

    async def ping(self) -> bool:
        return True


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def apply_auth_override(auth_override):
    def _apply(app):
        app.dependency_overrides[auth_dependency] = auth_override

    return _apply


@pytest.fixture
def cron_secret(monkeypatch):
    monkeypatch.setattr(settings, "CRON_SECRET", CRON_SECRET)
    return CRON_SECRET


@pytest.fixture
def cron_headers(cron_secret):
    return {"Authorization": f"Bearer {cron_secret}"}


class FakeNotifier:
    """Records messages instead of calling Telegram."""

    def __init__(self, error: Exception | None = None):
        self.messages: list[str] = []
        self.error = error

    async def send_message(self, text: str, parse_mode: str = "HTML") -> dict:
        if self.error:
            raise self.error
        self.messages.append(text)
        return {"ok": True}


@pytest.fixture
def fake_notifier():
    return FakeNotifier()
