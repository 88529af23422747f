from sentinelone_mcp import configure_logging
from sentinelone_mcp.http import build_http_app
from sentinelone_mcp.server import Services, bind_services
from sentinelone_mcp.settings import load_settings

# uvicorn asgi:app  (SENTINELONE_API_KEY, SENTINELONE_API_BASE and MCP_AUTH_TOKEN must be set)
settings = load_settings(mcp_transport="http")
configure_logging(settings.log_level)
bind_services(Services(settings))

app = build_http_app(settings)
