"""Run the MCP server: ``python -m systemd_monitoring_mcp``."""
import logging
import sys

import uvicorn

from .config import Settings
from .server import configure_logging, create_app
from .utils.errors import ConfigError

logger = logging.getLogger(__name__)


def main():
    try:
        settings = Settings.from_env()
    except ConfigError as e:
        print(f"configuration error: {e}", file=sys.stderr)
        sys.exit(2)

    configure_logging(settings.log_level)
    app = create_app(settings)

    logger.info(f"Starting HTTP server on {settings.bind_addr}:{settings.bind_port}")
    uvicorn.run(
        app,
        host=settings.bind_addr,
        port=settings.bind_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
