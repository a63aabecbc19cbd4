"""
Configuration management for the narration services.
"""

import json
import os
from typing import Any

import yaml

from dotenv import load_dotenv

REPOSITORY_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "../.."))


class ServiceConfig:
    """Configuration management for services using environment variables."""

    def __init__(self) -> None:
        """Initialize configuration by loading environment variables."""
        env_path = os.path.join(REPOSITORY_ROOT, ".env")
        load_dotenv(dotenv_path=env_path, override=True)
        self.config: dict[str, Any] = {}
        self.narration_config: dict[str, Any] = {}
        self.narration_config_path = os.getenv(
            "NARRATION_CONFIG_PATH",
            os.path.join(REPOSITORY_ROOT, "config", "narration.yaml"),
        )
        self.load_from_env()
        self.load_narration_config()

    def load_from_env(self) -> None:
        """Load configuration from environment variables."""
        self.config = {
            "elevenlabs_api_key": os.getenv("ELEVENLABS_API_KEY"),
            "elevenlabs_voice_id": os.getenv("ELEVENLABS_VOICE_ID", "21m00Tcm4TlvDq8ikWAM"),
            "elevenlabs_model_id": os.getenv("ELEVENLABS_MODEL_ID", "eleven_multilingual_v2"),
            "elevenlabs_base_url": os.getenv("ELEVENLABS_BASE_URL", "https://api.elevenlabs.io"),
            "tts_driver": os.getenv("TTS_DRIVER", "elevenlabs"),
            "synthesis_timeout": int(os.getenv("SYNTHESIS_TIMEOUT", "120")),
            "content_dir": os.getenv("CONTENT_DIR", os.path.join(REPOSITORY_ROOT, "content")),
            "storage_backend": os.getenv("NARRATION_STORAGE", "local"),
            "media_root": os.getenv("MEDIA_ROOT", os.path.join(REPOSITORY_ROOT, "media")),
            "media_base_url": os.getenv("MEDIA_BASE_URL", "/media"),
            "redis_url": os.getenv("REDIS_URL", "redis://localhost:6379/0"),
            "cache_prefix": os.getenv("CACHE_PREFIX", "tts"),
            "content_hash_length": int(os.getenv("CONTENT_HASH_LENGTH", "16")),
            "narration_service_url": os.getenv("NARRATION_SERVICE_URL", "http://localhost:8000/api"),
            "allowed_origins": json.loads(os.getenv("ALLOWED_ORIGINS", '["*"]')),
            "debug": os.getenv("DEBUG", "false").lower() == "true",
            "log_level": os.getenv("LOG_LEVEL", "INFO"),
        }

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value by key.

        Args:
            key: Configuration key
            default: Default value if key not found

        Returns:
            Configuration value
        """
        value = self.config.get(key, default)
        return default if value is None else value

    def set(self, key: str, value: Any) -> None:
        """
        Set configuration value.

        Args:
            key: Configuration key
            value: Configuration value
        """
        self.config[key] = value

    def reload(self) -> None:
        """Reload configuration from environment variables."""
        self.load_from_env()
        self.load_narration_config()

    def load_narration_config(self) -> None:
        """Load narration tuning values from the YAML file."""
        path = os.path.abspath(self.narration_config_path)
        try:
            with open(path, "r", encoding="utf-8") as stream:
                data = yaml.safe_load(stream) or {}
        except FileNotFoundError:
            data = {}
        self.narration_config = data

    def get_narration_value(self, path: str, default: Any = None) -> Any:
        """Retrieve a narration tuning value via dotted path."""
        env_override_key = f"NARRATION_FLAG_{path.replace('.', '_').upper()}"
        env_value = os.getenv(env_override_key)
        if env_value is not None:
            return self._coerce_env_value(env_value, default)

        node: Any = self.narration_config
        for part in path.split("."):
            if isinstance(node, dict) and part in node:
                node = node[part]
            else:
                return default
        return node if node is not None else default

    def set_narration_config(self, narration_config: dict[str, Any]) -> None:
        """Override narration tuning values (useful for tests)."""
        self.narration_config = narration_config

    @staticmethod
    def _coerce_env_value(raw: str, default: Any) -> Any:
        lowered = raw.lower()
        if lowered in {"true", "false"}:
            return lowered == "true"
        if lowered.replace(".", "", 1).isdigit():
            try:
                return float(lowered) if "." in lowered else int(lowered)
            except ValueError:
                return raw
        return raw or default


# Global configuration instance
config = ServiceConfig()
