import logging
import sys

from sentinelone_mcp.server import Services, bind_services, mcp
from .errors import ConfigurationError
from .settings import load_settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = "INFO") -> None:
    # stdout carries the stdio protocol, so logs go to stderr.
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT, stream=sys.stderr, force=True)
    logging.getLogger("httpx").setLevel(logging.WARNING)


def main():
    try:
        settings = load_settings()
    except ConfigurationError as exc:
        print(exc, file=sys.stderr)
        sys.exit(1)

    configure_logging(settings.log_level)
    bind_services(Services(settings))
    logger = logging.getLogger(__name__)

    if settings.mcp_transport == "http":
        import uvicorn

        from .http import build_http_app

        logger.info("Starting SentinelOne MCP over HTTP on %s:%s", settings.mcp_host, settings.mcp_port)
        uvicorn.run(build_http_app(settings), host=settings.mcp_host, port=settings.mcp_port)
    else:
        logger.info("Starting SentinelOne MCP over stdio")
        mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
