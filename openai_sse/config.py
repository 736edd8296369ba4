"""Configuration management for the streaming client."""

import os
from typing import Any

import yaml
from dotenv import load_dotenv

DEFAULT_CONFIG_PATH = os.path.join(os.path.dirname(__file__), "config.yaml")


class Configuration:
    """Manages configuration and environment variables for the client."""

    def __init__(self, config_path: str | None = None) -> None:
        """Initialize configuration from YAML and environment variables."""
        self.load_env()  # Load .env for API keys
        self._config = self._load_yaml_config(config_path or DEFAULT_CONFIG_PATH)

    @staticmethod
    def load_env() -> None:
        """Load environment variables from .env file."""
        load_dotenv()

    @staticmethod
    def _load_yaml_config(config_path: str) -> dict[str, Any]:
        """Load configuration from YAML file."""
        with open(config_path) as file:
            config = yaml.safe_load(file)
            if not isinstance(config, dict):
                raise ValueError(
                    f"Config file must be YAML dict, got {type(config)}"
                )
            return config

    @classmethod
    def from_dict(cls, config: dict[str, Any]) -> "Configuration":
        """Build a configuration from an in-memory dict (no YAML file)."""
        instance = cls.__new__(cls)
        cls.load_env()
        instance._config = config
        return instance

    def get_config_dict(self) -> dict[str, Any]:
        """Get the full configuration dictionary."""
        return self._config

    def get_client_config(self) -> dict[str, Any]:
        """Get API client configuration.

        Returns:
            Client configuration dictionary.

        Raises:
            ValueError: If base_url is missing.
        """
        client_config = self._config.get("client", {})
        if not client_config.get("base_url"):
            raise ValueError(
                "client.base_url must be explicitly configured in config.yaml"
            )
        return client_config

    @property
    def base_url(self) -> str:
        return self.get_client_config()["base_url"].rstrip("/")

    @property
    def api_key(self) -> str:
        """Get the API key from the environment.

        Returns:
            The API key as a string.

        Raises:
            ValueError: If the API key is not found in environment variables.
        """
        env_key = self.get_client_config().get("api_key_env", "OPENAI_API_KEY")
        api_key = os.getenv(env_key)
        if not api_key:
            raise ValueError(
                f"API key '{env_key}' not found in environment variables"
            )
        return api_key

    def get_http_client_config(self) -> dict[str, Any]:
        """Get HTTP client configuration.

        Returns:
            HTTP client configuration dictionary with validated values.

        Raises:
            ValueError: If required HTTP client parameters are missing or invalid.
        """
        http_config = self.get_client_config().get("http_client", {})

        required_keys = [
            "max_connections", "max_keepalive", "keepalive_expiry",
            "connect_timeout", "read_timeout", "write_timeout", "pool_timeout",
        ]
        for key in required_keys:
            if key not in http_config:
                raise ValueError(
                    f"client.http_client.{key} must be explicitly configured "
                    "in config.yaml"
                )

        max_conn = http_config["max_connections"]
        max_keepalive = http_config["max_keepalive"]

        if max_conn < 1:
            raise ValueError("http_client.max_connections must be at least 1")
        if max_keepalive > max_conn:
            raise ValueError("http_client.max_keepalive must be <= max_connections")
        for key in ["connect_timeout", "write_timeout", "pool_timeout"]:
            if http_config[key] <= 0:
                raise ValueError(f"http_client.{key} must be positive")
        # read_timeout may be null (no read timeout)
        read_timeout = http_config["read_timeout"]
        if read_timeout is not None and read_timeout <= 0:
            raise ValueError("http_client.read_timeout must be positive or null")

        return http_config

    def get_streaming_config(self) -> dict[str, Any]:
        """Get streaming configuration.

        Returns:
            Streaming configuration dictionary with validated values.

        Raises:
            ValueError: If poll_interval is not positive.
        """
        streaming_config = self._config.get("streaming", {})
        require_event_stream = streaming_config.get("require_event_stream", True)
        poll_interval = streaming_config.get("poll_interval", 1.0)

        if not isinstance(require_event_stream, bool):
            raise ValueError("streaming.require_event_stream must be a boolean")
        if poll_interval <= 0:
            raise ValueError("streaming.poll_interval must be positive")

        return {
            "require_event_stream": require_event_stream,
            "poll_interval": poll_interval,
        }

    def get_logging_config(self) -> dict[str, Any]:
        """Get logging configuration from YAML."""
        return self._config.get("logging", {})
