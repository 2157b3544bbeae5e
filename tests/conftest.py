import pytest


class DummyResponse:
    def __init__(self, status_code: int = 200, json_data=None, reason_phrase: str = "OK"):
        self.status_code = status_code
        self.reason_phrase = reason_phrase
        self._json = json_data

    def json(self):
        if isinstance(self._json, Exception):
            raise self._json
        return self._json


# Async context manager stand-in for httpx.AsyncClient
class FakeClient:
    def __init__(self, get_fn):
        self.get = get_fn

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        pass


@pytest.fixture
def fake_http(monkeypatch):
    """Routes every httpx.AsyncClient created by a client module through `get_fn`.

    Returns the list of kwargs each AsyncClient was built with."""
    created = []

    def install(module, get_fn):
        def factory(*args, **kwargs):
            created.append(kwargs)
            return FakeClient(get_fn)

        monkeypatch.setattr(module.httpx, "AsyncClient", factory)
        return created

    return install
