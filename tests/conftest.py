import pytest
from fastapi.testclient import TestClient

from app.config import AppConfig, settings
from app.main import create_app
from app.routers.api import limiter

OWNER = "0xf39fd6e51aad88f6f4ce6ab8827279cfffb92266"


@pytest.fixture(autouse=True)
def _no_rate_limit():
    """Rate limiting has its own test; keep it out of the way elsewhere."""
    previous = settings.rate_limit.enabled
    settings.rate_limit.enabled = False
    limiter.reset()
    yield
    settings.rate_limit.enabled = previous


@pytest.fixture
def config():
    cfg = AppConfig()
    cfg.wager.owner = OWNER
    cfg.server.debug = True
    cfg.vrf.auto_fulfill = False
    return cfg


@pytest.fixture
def app(config):
    return create_app(config)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c
