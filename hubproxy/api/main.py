"""
Server entrypoint for the proxy.

Reads `ProxyConfig` from the environment (including a local `.env`),
configures logging, and serves `hubproxy.api.http_api.create_app` with
uvicorn on `PROXY_HOST:PROXY_PORT`.
"""

import logging

import uvicorn

from hubproxy.api.http_api import create_app
from hubproxy.config import ProxyConfig
from hubproxy.logging_setup import configure_logging


logger = logging.getLogger(__name__)


def main():
    config = ProxyConfig.from_env()
    configure_logging(config.log_level)
    logger.info(
        "Starting hubproxy on %s:%d -> %s (upstream timeout: %s)",
        config.host,
        config.port,
        config.base_url,
        config.timeout_seconds if config.timeout_seconds is not None else "none",
    )
    uvicorn.run(create_app(config), host=config.host, port=config.port)


if __name__ == "__main__":
    main()
