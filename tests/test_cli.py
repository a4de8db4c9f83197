import json
from unittest import mock

import pytest

from hubproxy.api.cli import ProxyClient, ProxyClientError, main


def fake_response(status_code=200, body=None):
    response = mock.Mock()
    response.status_code = status_code
    response.json.return_value = body
    response.text = json.dumps(body)
    return response


def test_command_returns_first_non_queue_full_body():
    session = mock.Mock()
    session.post.return_value = fake_response(body={"code": 0, "data": {"taskId": "1"}})
    client = ProxyClient("http://proxy.test/api/proxy", session=session)

    assert client.command("run", {"webappId": "w"}, key_index=2) == {"code": 0, "data": {"taskId": "1"}}
    session.post.assert_called_once()
    assert session.post.call_args.kwargs["json"] == {"action": "run", "payload": {"webappId": "w"}, "apiKeyIndex": 2}


def test_command_rotates_key_index_on_queue_full():
    session = mock.Mock()
    session.post.side_effect = [
        fake_response(body={"code": 421, "msg": "TASK_QUEUE_MAXED"}),
        fake_response(body={"code": 0, "data": "ok"}),
    ]
    client = ProxyClient(session=session)

    assert client.command("run", {}, key_index=0) == {"code": 0, "data": "ok"}
    indices = [call.kwargs["json"]["apiKeyIndex"] for call in session.post.call_args_list]
    assert indices == [0, 1]


def test_command_gives_up_after_max_attempts():
    session = mock.Mock()
    session.post.return_value = fake_response(body={"code": 421})
    client = ProxyClient(session=session, max_attempts=2)

    assert client.command("status", {"taskId": "1"}) == {"code": 421}
    assert session.post.call_count == 2


def test_non_200_raises():
    session = mock.Mock()
    session.post.return_value = fake_response(502, {"error": True, "code": "PROXY_ERROR"})
    client = ProxyClient(session=session)

    with pytest.raises(ProxyClientError) as info:
        client.command("outputs", {"taskId": "1"})
    assert info.value.status_code == 502


def test_unknown_action_rejected_locally():
    with pytest.raises(ValueError):
        ProxyClient(session=mock.Mock()).command("deleteEverything")


def test_upload_sends_raw_file_with_headers(tmp_path):
    image = tmp_path / "photo.jpg"
    image.write_bytes(b"\xff\xd8jpeg")
    session = mock.Mock()
    session.post.return_value = fake_response(body={"code": 0, "data": {"fileName": "api/x.jpg"}})

    ProxyClient(session=session).upload(image, key_index=1)

    kwargs = session.post.call_args.kwargs
    assert kwargs["data"] == b"\xff\xd8jpeg"
    assert kwargs["headers"]["x-action"] == "upload"
    assert kwargs["headers"]["x-file-name"] == "photo.jpg"
    assert kwargs["headers"]["x-api-key-index"] == "1"
    assert kwargs["headers"]["Content-Type"] == "image/jpeg"


def test_main_prints_result(capsys):
    with mock.patch("hubproxy.api.cli.ProxyClient.command", return_value={"code": 0}) as command:
        assert main(["--url", "http://proxy.test", "status", "--payload", '{"taskId": "7"}']) == 0
    command.assert_called_once_with("status", {"taskId": "7"}, 0)
    assert json.loads(capsys.readouterr().out) == {"code": 0}


def test_main_rejects_non_object_payload(capsys):
    assert main(["run", "--payload", "[1, 2]"]) == 1
    assert "JSON object" in capsys.readouterr().err
