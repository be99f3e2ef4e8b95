import json
import os
from pathlib import Path
from typing import List, Tuple

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from towerofsong.core.exceptions import ConfigLoadError


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # Project Paths
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    DATA_DIR: Path = Path(
        os.getenv("TOWEROFSONG_DATA_DIR", str(BASE_DIR.parent / "data"))
    )

    # Library configuration (music folders + credentials)
    CONFIG_FILE: Path = Path("config.json")

    # Database
    DB_NAME: str = "towerofsong.db"

    @property
    def DB_PATH(self) -> Path:
        return self.DATA_DIR / self.DB_NAME

    @property
    def DB_URL(self) -> str:
        # Use forward slashes so Windows paths work in the URL (no backslash escapes)
        path = self.DB_PATH.resolve().as_posix()
        return f"sqlite+aiosqlite:///{path}"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_RETENTION: str = "10 days"
    LOG_ROTATION: str = "10 MB"

    DB_ECHO: bool = False  # Enable SQLAlchemy query logging

    # Library sync
    SCAN_INTERVAL_HOURS: float = 24.0
    SCAN_ON_STARTUP: bool = True
    AUDIO_EXTENSIONS: List[str] = [".mp3", ".flac", ".wav"]

    # API
    CORS_ORIGINS: List[str] = ["*"]


class LibraryConfig(BaseModel):
    """Library configuration loaded once at startup.

    Frozen: a restart is required to pick up changes to the music folders
    or the credentials.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    music_folders: Tuple[str, ...] = ()
    username: str = ""
    password: str = ""

    @field_validator("music_folders", mode="after")
    @classmethod
    def absolute_folders(cls, folders: Tuple[str, ...]) -> Tuple[str, ...]:
        return tuple(os.path.abspath(os.path.expanduser(f)) for f in folders)


def load_library_config(path: Path) -> LibraryConfig:
    """Read and validate the JSON library configuration.

    Raises:
        ConfigLoadError: If the file cannot be read, is not valid JSON, or
            does not match the expected shape.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except OSError as e:
        raise ConfigLoadError(f"Cannot read config file {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigLoadError(f"Invalid JSON in config file {path}: {e}") from e

    try:
        return LibraryConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigLoadError(f"Invalid config file {path}: {e}") from e


settings = Settings()
