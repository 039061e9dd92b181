"""
Configuration data models for shamela-mirror.

These models define the structure of .shamela-mirror.json and
~/.config/shamela-mirror/config.json files, with validation and type
safety via Pydantic.
"""

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ApiConfig(BaseModel):
    """
    Remote patch API settings.

    The API key is normally supplied through the SHAMELA_API_KEY
    environment variable (or a .env file) rather than a config file.
    """
    base_url: str = Field(
        default="https://dev.shamela.ws/api/v1",
        description="Root URL of the patch API"
    )
    api_key: str = Field(
        default="",
        description="API key sent with every patch request"
    )
    timeout_seconds: float = Field(
        default=60.0,
        gt=0.0,
        description="Timeout for patch requests and archive downloads"
    )

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize the base URL so paths can be appended."""
        return v.rstrip("/")


class StorageConfig(BaseModel):
    """
    Local storage locations.

    Relative paths are resolved against the project directory.
    """
    data_dir: Path = Field(
        default=Path("shamela_data"),
        description="Directory for the master snapshot and books/ snapshots"
    )
    cache_dir: Path = Field(
        default=Path("shamela_cache"),
        description="Directory for version cursors and temporary extracts"
    )

    def resolve(self, project_dir: Path) -> "StorageConfig":
        """Return a copy with relative paths anchored at ``project_dir``."""
        return StorageConfig(
            data_dir=self.data_dir if self.data_dir.is_absolute() else project_dir / self.data_dir,
            cache_dir=(
                self.cache_dir if self.cache_dir.is_absolute() else project_dir / self.cache_dir
            ),
        )


class ServerConfig(BaseModel):
    """Settings for the HTTP API server."""
    host: str = Field(default="127.0.0.1", description="Interface to bind")
    port: int = Field(default=3001, ge=1, le=65535, description="Port to listen on")
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://localhost:3000"],
        description="Origins allowed to call the API from a browser"
    )


class MirrorConfig(BaseModel):
    """
    Top-level shamela-mirror configuration.

    Loaded from defaults, user config, project config, and env vars.

    Example:
        >>> config = MirrorConfig(api=ApiConfig(api_key="secret"))
        >>> config.api.base_url
        'https://dev.shamela.ws/api/v1'
        >>> config.storage.data_dir
        PosixPath('shamela_data')
    """
    api: ApiConfig = Field(
        default_factory=ApiConfig,
        description="Remote patch API"
    )
    storage: StorageConfig = Field(
        default_factory=StorageConfig,
        description="Local snapshot and cursor storage"
    )
    server: ServerConfig = Field(
        default_factory=ServerConfig,
        description="HTTP API server"
    )

    model_config = ConfigDict(
        extra="allow",  # Allow extra fields for forward compatibility
        validate_assignment=True,
    )
