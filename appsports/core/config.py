# appsports/core/config.py
from typing import Any, Dict, List, Optional
import yaml
import os
from dotenv import load_dotenv

DEFAULT_SOURCES = ["ss", "netstat", "lsof"]
DEFAULT_PROXY_PATTERNS = [r"^docker-pr(oxy)?$"]


class Config:
    """
    Loads configuration from environment variables (Priority 1) and 'config.yaml' (Priority 2).
    Built-in defaults apply when neither source sets a value.
    """
    def __init__(self, config_path: Optional[str] = None) -> None:
        current_dir = os.path.dirname(os.path.abspath(__file__))
        project_root = os.path.abspath(os.path.join(current_dir, '..', '..'))
        env_path = os.path.join(project_root, '.env')

        if os.path.exists(env_path):
            load_dotenv(dotenv_path=env_path)
        else:
            load_dotenv()

        self.config_path = config_path or os.getenv("APPSPORTS_CONFIG", "config.yaml")
        self.data = self._load_yaml()

    def _load_yaml(self) -> Dict[str, Any]:
        if not os.path.exists(self.config_path):
            return {}
        try:
            with open(self.config_path, "r") as f:
                data = yaml.safe_load(f) or {}
        except (yaml.YAMLError, OSError):
            return {}
        return data if isinstance(data, dict) else {}

    def _section(self, name: str) -> Dict[str, Any]:
        section = self.data.get(name) or {}
        return section if isinstance(section, dict) else {}

    @staticmethod
    def _as_float(value: Any, default: float) -> float:
        try:
            number = float(value)
        except (TypeError, ValueError):
            return default
        return number if number > 0 else default

    @staticmethod
    def _as_bool(value: Any) -> bool:
        if isinstance(value, bool):
            return value
        return str(value).strip().lower() in ("1", "true", "yes", "on")

    # --- RESOLUTION ---
    @property
    def command_timeout(self) -> float:
        value = os.getenv("APPSPORTS_COMMAND_TIMEOUT", self._section("resolution").get("command_timeout"))
        return self._as_float(value, 5.0)

    @property
    def parallel_sources(self) -> bool:
        value = os.getenv("APPSPORTS_PARALLEL_SOURCES", self._section("resolution").get("parallel_sources", True))
        return self._as_bool(value)

    @property
    def sources(self) -> List[str]:
        sources = self._section("resolution").get("sources") or DEFAULT_SOURCES
        return [str(s).lower() for s in sources]

    @property
    def recover_with_fuser(self) -> bool:
        return self._as_bool(self._section("resolution").get("recover_with_fuser", True))

    # --- CONTAINERS ---
    @property
    def container_runtime(self) -> str:
        return os.getenv("APPSPORTS_CONTAINER_RUNTIME", self._section("containers").get("runtime", "docker"))

    @property
    def proxy_patterns(self) -> List[str]:
        return list(self._section("containers").get("proxy_patterns") or DEFAULT_PROXY_PATTERNS)

    # --- TERMINATION ---
    @property
    def elevation_command(self) -> List[str]:
        value = os.getenv("APPSPORTS_ELEVATION_COMMAND", self._section("termination").get("elevation_command", "sudo"))
        if isinstance(value, list):
            return [str(v) for v in value]
        return str(value).split()

    @property
    def kill_timeout(self) -> float:
        value = os.getenv("APPSPORTS_KILL_TIMEOUT", self._section("termination").get("kill_timeout"))
        return self._as_float(value, 3.0)

    # --- LOGGING ---
    @property
    def log_level(self) -> str:
        return os.getenv("APPSPORTS_LOG_LEVEL", self._section("logging").get("level", "WARNING"))

    @property
    def log_file(self) -> str:
        return os.getenv("APPSPORTS_LOG_FILE", self._section("logging").get("file") or "")
