"""
Configuration management for the tenant hub.

Settings come from environment variables (and a ``.env`` file when present),
optionally overlaid with TOML files. Values are plain scalars; pydantic only
coerces types.
"""

import os
import shlex
from pathlib import Path
from typing import Any, List, Optional, Union

import toml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from mcp_tenant_hub.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIG_FILES = [
    "/etc/mcp-tenant-hub/config.toml",
    "./.mcp-tenant-hub.toml",
]


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Root logging level")
    format_type: str = Field(default="text", description="Log format (text/json)")
    file: Optional[str] = Field(default=None, description="Log file path")
    enable_rich: bool = Field(default=True, description="Enable Rich console output")
    max_bytes: int = Field(default=10 * 1024 * 1024, description="Max log file size")
    backup_count: int = Field(default=5, description="Number of backup files")
    suppress_http: bool = Field(default=True, description="Suppress HTTP client logging")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate logging level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}")
        return v.upper()

    @field_validator("format_type")
    @classmethod
    def validate_format_type(cls, v: str) -> str:
        """Validate format type."""
        if v not in ["text", "json"]:
            raise ValueError(f"Invalid format type: {v}")
        return v


class Settings(BaseSettings):
    """Main configuration class."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    # Gateway
    host: str = Field(default="0.0.0.0", description="API listen host")
    port: int = Field(default=8000, description="API listen port")
    mcp_hub_secret: Optional[str] = Field(default=None, description="Shared bearer secret")
    tenant_header: str = Field(default="X-Tenant-ID", description="Header carrying the tenant id")
    max_body_bytes: int = Field(default=50 * 1024 * 1024, description="Request body ceiling")

    # Database
    database_url: Optional[str] = Field(default=None, description="PostgreSQL connection string")
    db_pool_min_size: int = Field(default=1, description="Minimum pool connections")
    db_pool_max_size: int = Field(default=10, description="Maximum pool connections")
    notify_channel: str = Field(
        default="user_mcp_servers_changed",
        description="LISTEN/NOTIFY channel that triggers a rebuild",
    )

    # Hub process
    config_file_path: str = Field(default="mcp-servers.json", description="Generated hub config")
    hub_command: str = Field(default="npx mcp-hub", description="Hub launch command")
    hub_port: int = Field(default=3000, description="Hub listen port")
    hub_url: Optional[str] = Field(default=None, description="Hub base URL")
    hub_request_timeout: float = Field(default=30.0, description="Forwarded call timeout (s)")
    watch_config: bool = Field(default=True, description="Start the hub with --watch")
    auto_shutdown: bool = Field(default=False, description="Pass --auto-shutdown to the hub")
    shutdown_delay: int = Field(default=0, description="Hub --shutdown-delay (ms)")
    startup_grace_period: float = Field(default=1.0, description="Seconds the hub must survive")
    shutdown_timeout: float = Field(default=5.0, description="Seconds before SIGKILL")

    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def get_config_file_path(self) -> Path:
        """Get the generated hub configuration path."""
        return Path(os.path.expanduser(self.config_file_path)).absolute()

    def get_hub_url(self) -> str:
        """Get the base URL of the hub API."""
        if self.hub_url:
            return self.hub_url.rstrip("/")
        return f"http://127.0.0.1:{self.hub_port}"

    def get_log_file(self) -> Optional[Path]:
        """Get log file path."""
        if self.logging.file:
            return Path(os.path.expanduser(self.logging.file))
        return None

    def hub_command_line(self) -> List[str]:
        """Build the argv used to launch the hub process."""
        argv = shlex.split(self.hub_command)
        argv += [
            "--config", str(self.get_config_file_path()),
            "--port", str(self.hub_port),
        ]
        if self.watch_config:
            argv.append("--watch")
        if self.auto_shutdown:
            argv += ["--auto-shutdown", "--shutdown-delay", str(self.shutdown_delay)]
        return argv


class ConfigManager:
    """Configuration manager with hierarchical loading."""

    def __init__(self):
        self._settings: Optional[Settings] = None

    def load_config(
        self,
        config_files: Optional[List[Union[str, Path]]] = None,
        **overrides: Any,
    ) -> Settings:
        """
        Load configuration from TOML files, the environment and overrides.

        Args:
            config_files: TOML files to overlay, later files win
            **overrides: Explicit values, highest precedence

        Returns:
            Loaded settings
        """
        if self._settings is not None:
            return self._settings

        if config_files is None:
            config_files = DEFAULT_CONFIG_FILES

        config_data = {}

        for config_file in config_files:
            file_path = Path(os.path.expanduser(str(config_file)))
            if file_path.exists():
                try:
                    config_data.update(toml.load(file_path))
                    logger.debug(f"Loaded configuration from {file_path}")
                except (OSError, toml.TomlDecodeError) as e:
                    logger.warning(f"Failed to load config from {file_path}: {e}")

        config_data.update(overrides)

        self._settings = Settings(**config_data)
        return self._settings

    def get_config(self) -> Settings:
        """Get current configuration."""
        if self._settings is None:
            return self.load_config()
        return self._settings

    def reload_config(self, **overrides: Any) -> Settings:
        """Reload configuration."""
        self._settings = None
        return self.load_config(**overrides)


# Global configuration manager
_config_manager = ConfigManager()

# Convenience functions
load_config = _config_manager.load_config
get_config = _config_manager.get_config
reload_config = _config_manager.reload_config
