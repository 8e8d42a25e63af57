import pytest

from appsports.core.config import Config

YAML_CONFIG = """
resolution:
  command_timeout: 2.5
  parallel_sources: false
  sources: [lsof, SS]
  recover_with_fuser: false
containers:
  runtime: podman
  proxy_patterns: ["^rootlessport$"]
termination:
  elevation_command: [doas]
  kill_timeout: 10
logging:
  level: DEBUG
  file: /tmp/apps-ports.log
"""


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(YAML_CONFIG)
    return str(path)


def test_defaults(config):
    assert config.command_timeout == 5.0
    assert config.parallel_sources is True
    assert config.sources == ["ss", "netstat", "lsof"]
    assert config.recover_with_fuser is True
    assert config.container_runtime == "docker"
    assert config.proxy_patterns == [r"^docker-pr(oxy)?$"]
    assert config.elevation_command == ["sudo"]
    assert config.kill_timeout == 3.0
    assert config.log_level == "WARNING"
    assert config.log_file == ""


def test_yaml_values(config_file):
    config = Config(config_file)

    assert config.command_timeout == 2.5
    assert config.parallel_sources is False
    assert config.sources == ["lsof", "ss"]
    assert config.recover_with_fuser is False
    assert config.container_runtime == "podman"
    assert config.proxy_patterns == ["^rootlessport$"]
    assert config.elevation_command == ["doas"]
    assert config.kill_timeout == 10.0
    assert config.log_level == "DEBUG"
    assert config.log_file == "/tmp/apps-ports.log"


def test_environment_has_priority(config_file, monkeypatch):
    monkeypatch.setenv("APPSPORTS_COMMAND_TIMEOUT", "7")
    monkeypatch.setenv("APPSPORTS_CONTAINER_RUNTIME", "docker")
    monkeypatch.setenv("APPSPORTS_ELEVATION_COMMAND", "sudo -k")
    monkeypatch.setenv("APPSPORTS_PARALLEL_SOURCES", "yes")

    config = Config(config_file)

    assert config.command_timeout == 7.0
    assert config.container_runtime == "docker"
    assert config.elevation_command == ["sudo", "-k"]
    assert config.parallel_sources is True


def test_config_path_from_environment(config_file, monkeypatch):
    monkeypatch.setenv("APPSPORTS_CONFIG", config_file)
    assert Config().container_runtime == "podman"


def test_invalid_numbers_fall_back(monkeypatch, config):
    monkeypatch.setenv("APPSPORTS_COMMAND_TIMEOUT", "soon")
    monkeypatch.setenv("APPSPORTS_KILL_TIMEOUT", "-1")

    assert config.command_timeout == 5.0
    assert config.kill_timeout == 3.0


def test_malformed_yaml_yields_defaults(tmp_path):
    path = tmp_path / "broken.yaml"
    path.write_text("resolution: [unclosed\n  - : :")

    config = Config(str(path))

    assert config.data == {}
    assert config.command_timeout == 5.0
