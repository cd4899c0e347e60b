"""Configuration schema using Pydantic.

Why this exists:
- Type-safe configuration with validation
- Environment variable support
- Multiple deployment profiles (local, server)
- Clear documentation of all settings

How to extend:
1. Add new fields to existing config classes
2. Create new config classes for new components
3. Mirror the new settings in config.toml
"""

from enum import Enum
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class EntryStoreType(str, Enum):
    """Supported entry stores."""

    SQLITE = "sqlite"
    MEMORY = "memory"


class EntryStoreConfig(BaseModel):
    """Entry store configuration."""

    store_type: EntryStoreType = EntryStoreType.SQLITE
    connection_string: Optional[str] = "sqlite:///~/.kbase/kbase.db"

    def model_post_init(self, __context: Any) -> None:
        """Expand ~ in connection string."""
        if self.connection_string and "~" in self.connection_string:
            self.connection_string = self.connection_string.replace(
                "~", str(Path.home())
            )


class BulkImportConfig(BaseModel):
    """Bulk import settings.

    The closed set of entry types is not configurable; see EntryType.
    """

    max_title_length: int = Field(default=255, gt=0, description="Longest accepted title")
    default_type: str = Field(default="website", description="Type used for CSV rows without one")


class UploadConfig(BaseModel):
    """File upload settings."""

    max_file_size: int = Field(default=10 * 1024 * 1024, gt=0, description="Upload limit in bytes")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = LogLevel.INFO
    log_dir: Optional[Path] = None
    enable_file: bool = False
    max_days: int = Field(default=30, gt=0)


class AppConfig(BaseSettings):
    """Main application configuration.

    Loads from:
    1. Config file (TOML)
    2. Environment variables (prefixed with KBASE_)
    3. .env file
    """

    model_config = SettingsConfigDict(
        env_prefix="KBASE_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    # Application settings
    app_name: str = "kbase"
    json_logs: bool = False
    data_dir: Path = Field(default=Path.home() / ".kbase")
    default_owner: int = 1

    # Component configurations
    storage: EntryStoreConfig = Field(default_factory=EntryStoreConfig)
    bulk_import: BulkImportConfig = Field(default_factory=BulkImportConfig)
    upload: UploadConfig = Field(default_factory=UploadConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Environment variables override values passed from the config file."""
        return env_settings, dotenv_settings, init_settings, file_secret_settings

    def model_post_init(self, __context: Any) -> None:
        """Post-initialization: create data directory if needed."""
        self.data_dir = self.data_dir.expanduser()
        self.data_dir.mkdir(parents=True, exist_ok=True)
