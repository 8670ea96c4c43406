"""Configuration helpers for the Smart Closet app."""

from dataclasses import dataclass
from pathlib import Path
import os
from typing import Optional

DEFAULT_TAGGING_MODEL = "gemini-2.5-flash"
DEFAULT_BACKGROUND_MODEL = "gemini-2.5-flash-image"


@dataclass
class ClosetConfig:
    """Configuration values for the closet service.

    Secrets (the Gemini API key, the Firebase web API key and the path of the
    cloud service-account JSON) are expected from the environment; everything
    else can live in an environment YAML file.
    """

    google_api_key: Optional[str] = None
    tagging_model: str = DEFAULT_TAGGING_MODEL
    background_model: str = DEFAULT_BACKGROUND_MODEL
    firebase_api_key: Optional[str] = None
    cloud_config_path: Optional[str] = None
    local_storage_backend: str = "json"
    local_storage_path: Optional[str] = None
    log_level: str = "INFO"
    environment: str | None = None

    @classmethod
    def from_env(cls) -> "ClosetConfig":
        """Build a config from environment variables or an environment YAML file.

        Environment specific YAML lives in ``config/environments/<env>.yaml`` by
        default and is merged under environment variables.
        """

        env_name = os.getenv("APP_ENV")
        config_path = os.getenv("APP_CONFIG_PATH")
        config_dir = Path(os.getenv("CLOSET_CONFIG_DIR", "config/environments"))
        yaml_config: dict = {}

        if config_path:
            path = Path(config_path)
        elif env_name:
            path = config_dir / f"{env_name}.yaml"
        else:
            path = None

        if path and path.exists():
            yaml_config = cls._load_yaml_config(path)

        def get_value(key: str, default: Optional[str] = None) -> Optional[str]:
            env_key = key.upper()
            return os.getenv(env_key, yaml_config.get(key, default))

        return cls(
            google_api_key=get_value("google_api_key"),
            tagging_model=str(get_value("tagging_model") or DEFAULT_TAGGING_MODEL),
            background_model=str(get_value("background_model") or DEFAULT_BACKGROUND_MODEL),
            firebase_api_key=get_value("firebase_api_key"),
            cloud_config_path=get_value("cloud_config_path"),
            local_storage_backend=str(get_value("local_storage_backend") or "json"),
            local_storage_path=get_value("local_storage_path"),
            log_level=str(get_value("log_level") or "INFO"),
            environment=env_name,
        )

    @staticmethod
    def _load_yaml_config(path: Path) -> dict:
        """Parse a flat ``key: value`` config file."""

        config: dict[str, str] = {}
        for line in path.read_text().splitlines():
            stripped = line.strip()
            if not stripped or stripped.startswith("#"):
                continue
            if ":" not in stripped:
                continue
            key, raw_value = stripped.split(":", 1)
            value = raw_value.strip()
            if (value.startswith("\"") and value.endswith("\"")) or (
                value.startswith("'") and value.endswith("'")
            ):
                value = value[1:-1]
            config[key.strip()] = value
        return config
