import pytest
import respx

from sentinelone_mcp.client import SentinelOneClient
from sentinelone_mcp.server import Services, bind_services
from sentinelone_mcp.settings import Settings

API_KEY = "s3cr3t-token"
BASE = "https://test.sentinelone.net"
API = f"{BASE}/web/api/v2.1"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        sentinelone_api_key=API_KEY,
        sentinelone_api_base=f"{BASE}/",
        mcp_transport="stdio",
    )


@pytest.fixture
def api():
    with respx.mock(base_url=API, assert_all_called=False) as router:
        yield router


@pytest.fixture
async def client(settings, api):
    async with SentinelOneClient(settings) as c:
        yield c


class FakeSleep:
    """Records requested delays instead of waiting."""

    def __init__(self):
        self.calls = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def fake_sleep() -> FakeSleep:
    return FakeSleep()


@pytest.fixture
async def services(settings, api, fake_sleep):
    s = Services(settings)
    s.deep_visibility._sleep = fake_sleep
    bind_services(s)
    yield s
    bind_services(None)
    await s.close()
