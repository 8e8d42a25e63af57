import os
import pytest

from appsports.core.config import Config
from appsports.core.schemas import PortRecord

ENV_VARS = [
    "APPSPORTS_CONFIG",
    "APPSPORTS_COMMAND_TIMEOUT",
    "APPSPORTS_PARALLEL_SOURCES",
    "APPSPORTS_CONTAINER_RUNTIME",
    "APPSPORTS_ELEVATION_COMMAND",
    "APPSPORTS_KILL_TIMEOUT",
    "APPSPORTS_LOG_LEVEL",
    "APPSPORTS_LOG_FILE",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's own APPSPORTS_* settings out of the tests."""
    for var in ENV_VARS:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def config(tmp_path):
    """Defaults only: points at a config file that does not exist."""
    return Config(config_path=os.path.join(str(tmp_path), "missing.yaml"))


@pytest.fixture
def node_record():
    return PortRecord(port=3000, pid=12264, process_name="node", command="node server.js", sources=["ss"])
