import json

import httpx
import pytest
from fastapi.testclient import TestClient

from hubproxy.api.http_api import create_app
from hubproxy.config import ProxyConfig
from hubproxy.keys.pool import KeyPool
from hubproxy.upstream.dispatcher import UpstreamDispatcher


class FakeUpstream:
    """Records outbound requests and answers with a canned response."""

    def __init__(self):
        self.requests = []
        self.response = httpx.Response(200, json={"code": 0, "msg": "success", "data": {}})
        self.error = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.response

    def json_body(self, position=-1):
        return json.loads(self.requests[position].content)


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest.fixture
def dispatcher(upstream):
    client = httpx.AsyncClient(transport=httpx.MockTransport(upstream))
    return UpstreamDispatcher(client)


@pytest.fixture
def make_client(dispatcher):
    def factory(keys="k0,k1"):
        app = create_app(
            config=ProxyConfig(api_keys=keys),
            key_pool=KeyPool(keys),
            dispatcher=dispatcher,
        )
        return TestClient(app)

    return factory
