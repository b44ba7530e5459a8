"""
CLI Configuration Management
"""

import os
import json
from pathlib import Path
from dataclasses import dataclass, field, asdict
from typing import Optional, Dict, Any

from dotenv import load_dotenv


# Polling intervals offered by the performance page (seconds, 0 = off)
REFRESH_INTERVALS = (0, 10, 30, 60)


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class AdminConfig:
    """Configuration for the SGC Admin client"""

    # API settings
    api_origin: str = "http://localhost:5000"
    api_prefix: str = "/api/v1"
    timeout: Optional[float] = None  # None keeps the transport default

    # List settings
    page_size: int = 10
    refresh_interval: int = 0

    # Banner / navigation timing
    success_banner_seconds: float = 3.0
    redirect_delay: float = 1.5

    # Output settings
    verbose: bool = False
    log_level: str = "INFO"
    json_logs: bool = False

    # Paths
    config_dir: str = field(default_factory=lambda: str(Path.home() / ".sgcadmin"))
    storage_file: str = "storage.json"
    history_file: str = ".sgcadmin_history"
    log_file: str = "logs/sgcadmin.log"

    def __post_init__(self):
        """Initialize paths and directories"""
        Path(self.config_dir).mkdir(parents=True, exist_ok=True)

        if not os.path.isabs(self.storage_file):
            self.storage_file = str(Path(self.config_dir) / self.storage_file)
        if not os.path.isabs(self.history_file):
            self.history_file = str(Path(self.config_dir) / self.history_file)
        if not os.path.isabs(self.log_file):
            self.log_file = str(Path(self.config_dir) / self.log_file)

        if self.refresh_interval not in REFRESH_INTERVALS:
            raise ValueError(
                f"refresh_interval must be one of {REFRESH_INTERVALS}, got {self.refresh_interval}"
            )
        if self.page_size < 1:
            raise ValueError("page_size must be positive")

    @property
    def api_base_url(self) -> str:
        """Origin plus API prefix, e.g. http://localhost:5000/api/v1"""
        prefix = "/" + self.api_prefix.strip("/") if self.api_prefix.strip("/") else ""
        return self.api_origin.rstrip("/") + prefix

    def load_from_file(self, config_path: str) -> None:
        """Load configuration from JSON file"""
        path = Path(config_path)
        if path.exists():
            with open(path) as f:
                data = json.load(f)
                for key, value in data.items():
                    if hasattr(self, key):
                        setattr(self, key, value)

    def save_to_file(self, config_path: Optional[str] = None) -> None:
        """Save configuration to JSON file"""
        path = Path(config_path or (Path(self.config_dir) / "config.json"))
        with open(path, 'w') as f:
            json.dump(asdict(self), f, indent=2)

    @classmethod
    def load_default(cls, env_file: Optional[str] = None) -> "AdminConfig":
        """
        Load configuration from the user config directory, then .env,
        then the process environment (later sources win).
        """
        load_dotenv(env_file, override=False)

        config_dir = os.environ.get("SGC_CONFIG_DIR")
        config = cls(config_dir=config_dir) if config_dir else cls()

        default_config_path = Path(config.config_dir) / "config.json"
        if default_config_path.exists():
            config.load_from_file(str(default_config_path))

        config._load_from_env()
        if config.refresh_interval not in REFRESH_INTERVALS:
            raise ValueError(f"refresh_interval must be one of {REFRESH_INTERVALS}")
        return config

    def _load_from_env(self) -> None:
        """Load configuration from environment variables"""
        env_mappings = {
            "SGC_API_URL": "api_origin",
            "SGC_API_PREFIX": "api_prefix",
            "SGC_TIMEOUT": ("timeout", float),
            "SGC_PAGE_SIZE": ("page_size", int),
            "SGC_REFRESH_INTERVAL": ("refresh_interval", int),
            "SGC_VERBOSE": ("verbose", _as_bool),
            "SGC_LOG_LEVEL": "log_level",
            "SGC_JSON_LOGS": ("json_logs", _as_bool),
        }

        for env_var, mapping in env_mappings.items():
            value = os.environ.get(env_var)
            if value:
                if isinstance(mapping, tuple):
                    attr, converter = mapping
                    setattr(self, attr, converter(value))
                else:
                    setattr(self, mapping, value)

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary"""
        return asdict(self)
