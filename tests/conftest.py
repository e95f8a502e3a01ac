import httpx
import pytest
from fastapi.testclient import TestClient

from module_registry.legacy import LegacyDatabase
from module_registry.main import app, get_http_client, get_legacy_database
from module_registry.schemas import LegacyPackage


class FakeUpstream:
    def __init__(self):
        self.calls = []
        self.status = 200
        self.headers = [
            ("Content-Type", "application/typescript"),
            ("ETag", '"abc123"'),
            ("Connection", "keep-alive"),
        ]
        self.body = b"export const x = 1;\n"
        self.error = None

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(str(request.url))
        if self.error is not None:
            raise self.error
        return httpx.Response(self.status, headers=self.headers, content=self.body)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handle))


@pytest.fixture()
def legacy_db():
    return LegacyDatabase(
        {
            "oak": LegacyPackage(
                url="https://raw.githubusercontent.com/oakserver/oak/master",
                repo="https://github.com/oakserver/oak",
            ),
            "mirror": LegacyPackage(
                url="https://gitee.com/acme/mirror/raw/master",
                repo="https://gitee.com/acme/mirror",
            ),
            "broken": LegacyPackage(url="", repo="not a url"),
        }
    )


@pytest.fixture()
def upstream():
    return FakeUpstream()


@pytest.fixture()
def client(legacy_db, upstream):
    app.dependency_overrides[get_legacy_database] = lambda: legacy_db
    app.dependency_overrides[get_http_client] = upstream.client
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
