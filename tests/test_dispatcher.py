import asyncio

import httpx
import pytest

from hubproxy.core.types import JsonOp, QueueFull, Success, UploadOp, UpstreamMalformed
from hubproxy.upstream.dispatcher import UpstreamDispatcher, interpret_response, is_queue_full
from hubproxy.upstream.endpoints import build_url


@pytest.mark.parametrize(
    "operation,path",
    [
        ("upload", "/task/openapi/upload"),
        ("run", "/task/openapi/ai-app/run"),
        ("status", "/task/openapi/status"),
        ("outputs", "/task/openapi/outputs"),
        ("cancel", "/task/openapi/cancel"),
    ],
)
def test_build_url(operation, path):
    assert build_url("https://www.runninghub.ai/", operation) == "https://www.runninghub.ai" + path


@pytest.mark.parametrize(
    "body",
    [
        {"code": 421, "msg": "queue maxed"},
        {"code": "421"},
        {"code": "TASK_QUEUE_MAXED"},
        {"code": 500, "msg": "error: TASK_QUEUE_MAXED for this key"},
    ],
)
def test_queue_full_detection(body):
    assert is_queue_full(body)


@pytest.mark.parametrize("body", [{"code": 0, "msg": "success"}, {"code": 804}, {"msg": None}, [421], "TASK_QUEUE_MAXED", None])
def test_non_queue_full_bodies(body):
    assert not is_queue_full(body)


def test_interpret_non_json_body():
    outcome = interpret_response(500, "Internal Server Error", b"<html>oops</html>")
    assert outcome == UpstreamMalformed(status=500, status_text="Internal Server Error")


@pytest.mark.parametrize("content", [b'{"code": 0, "data": NaN}', b"Infinity", b'[-Infinity]'])
def test_interpret_non_standard_constants_are_malformed(content):
    assert interpret_response(200, "OK", content) == UpstreamMalformed(status=200, status_text="OK")


def test_interpret_empty_body_is_malformed():
    assert isinstance(interpret_response(204, "No Content", b""), UpstreamMalformed)


def test_interpret_queue_full():
    outcome = interpret_response(200, "OK", b'{"code":421,"msg":"queue maxed"}')
    assert outcome == QueueFull(body={"code": 421, "msg": "queue maxed"})


def test_interpret_passes_other_error_codes_through():
    outcome = interpret_response(200, "OK", b'{"code":804,"msg":"APIKEY_INVALID"}')
    assert outcome == Success(body={"code": 804, "msg": "APIKEY_INVALID"})


def test_dispatch_json_command_injects_key(dispatcher, upstream):
    op = JsonOp(operation="run", payload={"webappId": "1", "apiKey": "client-supplied"})
    outcome = asyncio.run(dispatcher.dispatch(op, "secret"))

    request = upstream.requests[0]
    assert request.method == "POST"
    assert str(request.url) == "https://www.runninghub.ai/task/openapi/ai-app/run"
    assert request.headers["content-type"] == "application/json"
    assert upstream.json_body() == {"webappId": "1", "apiKey": "secret"}
    assert isinstance(outcome, Success)


def test_dispatch_upload_builds_multipart(dispatcher, upstream):
    op = UploadOp(payload=b"PNGDATA", file_name="cat.png", content_type="image/png")
    asyncio.run(dispatcher.dispatch(op, "secret"))

    request = upstream.requests[0]
    assert str(request.url) == "https://www.runninghub.ai/task/openapi/upload"
    assert request.headers["content-type"].startswith("multipart/form-data")
    content = request.content
    assert b'name="file"; filename="cat.png"' in content
    assert b"Content-Type: image/png" in content
    assert b"PNGDATA" in content
    assert b'name="apiKey"\r\n\r\nsecret' in content
    assert b'name="fileType"\r\n\r\nimage' in content


def test_dispatch_uses_configured_base_url(upstream):
    client = httpx.AsyncClient(transport=httpx.MockTransport(upstream))
    dispatcher = UpstreamDispatcher(client, base_url="http://upstream.test")
    asyncio.run(dispatcher.dispatch(JsonOp(operation="cancel", payload={"taskId": "1"}), "k"))
    assert str(upstream.requests[0].url) == "http://upstream.test/task/openapi/cancel"


def test_dispatch_propagates_transport_errors(dispatcher, upstream):
    upstream.error = httpx.ConnectError("connection refused")
    with pytest.raises(httpx.ConnectError):
        asyncio.run(dispatcher.dispatch(JsonOp(operation="status"), "k"))


def test_dispatch_rejects_unknown_operation(dispatcher):
    with pytest.raises(TypeError):
        asyncio.run(dispatcher.dispatch("run", "k"))
