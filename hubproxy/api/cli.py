"""
Command-line client for a running hubproxy instance.

Architectural role:
- Acts as the caller the proxy expects: it owns key-rotation state across
  attempts, since the proxy itself never retries.
- Sends JSON commands (`run`, `status`, `outputs`, `cancel`) or raw image
  uploads to the proxy endpoint.

Request lifecycle (per command):
1. Send the request with the current key index.
2. If the 200 body carries the queue-full signal, bump the index and resend.
3. Stop after `max_attempts` and return the last body.

Error handling strategy:
- Non-200 proxy responses raise `ProxyClientError` with status and body.
- `main` prints errors to stderr and returns exit code 1.

Side effects:
- Reads `PROXY_URL` from the environment (and `.env`) for the default target.
- Reads the upload file from disk.
"""

from dotenv import load_dotenv

load_dotenv()

import argparse
import json
import logging
import mimetypes
import os
import sys
from pathlib import Path

import requests

from hubproxy.core.types import JSON_ACTIONS
from hubproxy.upstream.dispatcher import is_queue_full


logger = logging.getLogger(__name__)

DEFAULT_PROXY_URL = "http://127.0.0.1:8000/api/proxy"


class ProxyClientError(RuntimeError):
    """Proxy answered with a non-200 status."""

    def __init__(self, status_code: int, body: str):
        super().__init__(f"Proxy returned {status_code}: {body}")
        self.status_code = status_code
        self.body = body


class ProxyClient:
    """Thin `requests` wrapper that retries queue-full replies on the next key."""

    def __init__(self, proxy_url: str = DEFAULT_PROXY_URL, max_attempts: int = 3,
                 session: requests.Session | None = None, timeout: float | None = None):
        self.proxy_url = proxy_url
        self.max_attempts = max(1, max_attempts)
        self.session = session or requests.Session()
        self.timeout = timeout

    def command(self, action: str, payload: dict | None = None, key_index: int = 0):
        """Send a JSON command, rotating the key index on queue-full replies."""
        if action not in JSON_ACTIONS:
            raise ValueError(f"Unknown action: {action}")

        def send(index):
            return self.session.post(
                self.proxy_url,
                json={"action": action, "payload": payload or {}, "apiKeyIndex": index},
                timeout=self.timeout,
            )

        return self._send_with_rotation(send, key_index)

    def upload(self, path, key_index: int = 0, file_name: str | None = None,
               content_type: str | None = None):
        """Upload an image file as a raw body."""
        path = Path(path)
        data = path.read_bytes()
        file_name = file_name or path.name
        content_type = content_type or mimetypes.guess_type(file_name)[0] or "application/octet-stream"

        def send(index):
            headers = {
                "x-action": "upload",
                "x-file-name": file_name,
                "x-api-key-index": str(index),
                "Content-Type": content_type,
            }
            return self.session.post(self.proxy_url, data=data, headers=headers, timeout=self.timeout)

        return self._send_with_rotation(send, key_index)

    def _send_with_rotation(self, send, key_index: int):
        body = None
        index = key_index
        for attempt in range(self.max_attempts):
            response = send(index)
            if response.status_code != 200:
                raise ProxyClientError(response.status_code, response.text)

            body = response.json()
            if not is_queue_full(body):
                return body

            logger.warning("Queue full on key index %d (attempt %d/%d)", index, attempt + 1, self.max_attempts)
            index += 1
        return body


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="hubproxy-cli", description="Client for a hubproxy instance")
    parser.add_argument("--url", default=os.getenv("PROXY_URL", DEFAULT_PROXY_URL))
    parser.add_argument("--key-index", type=int, default=0)
    parser.add_argument("--max-attempts", type=int, default=3)

    sub = parser.add_subparsers(dest="command", required=True)
    for action in sorted(JSON_ACTIONS):
        cmd = sub.add_parser(action, help=f"send a '{action}' command")
        cmd.add_argument("--payload", default="{}", help="JSON object forwarded as payload")

    upload = sub.add_parser("upload", help="upload an image file")
    upload.add_argument("file")
    upload.add_argument("--file-name")
    upload.add_argument("--content-type")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    client = ProxyClient(args.url, max_attempts=args.max_attempts)

    try:
        if args.command == "upload":
            result = client.upload(args.file, args.key_index, args.file_name, args.content_type)
        else:
            payload = json.loads(args.payload)
            if not isinstance(payload, dict):
                raise ValueError("--payload must be a JSON object")
            result = client.command(args.command, payload, args.key_index)
    except (ProxyClientError, ValueError, OSError, requests.RequestException) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print(json.dumps(result, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
