import pytest
import yaml

from netmon.app import create_app
from netmon.config import Config
from netmon.correlation import CorrelationTable
from netmon.log_store import LogStore
from netmon.monitor import NetworkMonitor
from netmon.storage import MemoryStorage


class FakeClock:
    """Manually advanced epoch-millisecond clock."""

    def __init__(self, start=0):
        self.now = start

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock(start=10_000)


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def store(storage):
    return LogStore(storage, capacity=10)


@pytest.fixture
def monitor(store, clock):
    return NetworkMonitor(store, CorrelationTable(clock=clock))


@pytest.fixture
def config_path(tmp_path):
    """YAML config with in-memory, synchronous storage and no sweeper thread."""
    path = tmp_path / "config.yaml"
    path.write_text(yaml.dump({
        "storage": {"backend": "memory", "async_writes": False},
        "correlation": {"sweep_interval_seconds": 0},
    }))
    return str(path)


@pytest.fixture
def config(config_path):
    return Config(config_path)


@pytest.fixture
def app(config):
    application = create_app(config)
    application.config["TESTING"] = True
    return application


@pytest.fixture
def client(app):
    return app.test_client()
