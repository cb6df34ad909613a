"""Command line entry point for the relay server."""
import sys
import logging
import argparse

from aiohttp import web

from .app import create_app
from .conf import SSE_ENDPOINT, RelayConfig
from .vault import generate_session_secret

logger = logging.getLogger("navigator.relay")

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="navigator-relay",
        description="IndexMeNow MCP relay over SSE",
    )
    parser.add_argument("--host", help="listen host (overrides HOST)")
    parser.add_argument("--port", type=int, help="listen port (overrides PORT)")
    parser.add_argument(
        "--generate-secret",
        action="store_true",
        help="print a new SESSION_SECRET value and exit",
    )
    args = parser.parse_args(argv)

    if args.generate_secret:
        print(generate_session_secret())
        return 0

    try:
        config = RelayConfig.from_env()
    except (RuntimeError, ValueError) as err:
        logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
        logger.critical("Failed to start IndexMeNow MCP Server: %s", err)
        return 1

    overrides = {
        key: value
        for key, value in (("host", args.host), ("port", args.port))
        if value is not None
    }
    if overrides:
        config = config.model_copy(update=overrides)

    logging.basicConfig(level=config.log_level, format=LOG_FORMAT)
    app = create_app(config)
    logger.info(
        "IndexMeNow MCP Server running on http://%s:%d", config.host, config.port,
    )
    logger.info("Connect to %s for SSE transport", SSE_ENDPOINT)
    web.run_app(app, host=config.host, port=config.port, print=None)
    return 0


if __name__ == "__main__":
    sys.exit(main())
