"""User settings management.

Settings come from, in order of precedence: environment variables
(``AUTOSHORTS_*``, or ``GEMINI_API_KEY`` for the keys), a ``.env`` file,
and the user settings file ``~/.autoshorts/settings.json``.
"""

import json
import os
from pathlib import Path
from typing import Any, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import (
    BaseSettings,
    JsonConfigSettingsSource,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from autoshorts_core import (
    AnalysisConfig,
    ChunkConfig,
    Config,
    MomentBounds,
    RenderConfig,
    SourceConfig,
)
from autoshorts_core.utils.files import atomic_write_text


CONFIG_PATH_ENV = "AUTOSHORTS_SETTINGS_FILE"


def get_config_path() -> Path:
    """Get user settings file path."""
    override = os.environ.get(CONFIG_PATH_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".autoshorts" / "settings.json"


class Settings(BaseSettings):
    """Flat, user-editable settings."""

    model_config = SettingsConfigDict(
        env_prefix="AUTOSHORTS_",
        env_file=".env",
        extra="ignore",
        validate_assignment=True,
    )

    jobs_dir: Path = Field(default_factory=lambda: Path.home() / ".autoshorts" / "jobs")
    output_dir: Path = Path("./shorts")

    # Analysis
    gemini_api_keys: str = Field(
        "",
        validation_alias=AliasChoices("AUTOSHORTS_GEMINI_API_KEYS", "GEMINI_API_KEY", "gemini_api_keys"),
    )
    gemini_model: str = "gemini-2.5-flash"
    analysis_parallelism: int = Field(2, ge=1)
    analysis_max_attempts: int = Field(5, ge=1)
    analysis_timeout: int = Field(600, ge=1)
    analysis_temperature: float = Field(0.4, ge=0.0, le=2.0)

    # Chunking and moment bounds
    chunk_minutes: float = Field(30, gt=0)
    chunk_max_last_minutes: float = Field(45, gt=0)
    min_moment_seconds: float = Field(10, ge=0)
    max_moment_seconds: float = Field(90, gt=0)

    # Source acquisition
    analysis_quality: str = "low"
    render_quality: str = "best"
    cookies_file: Optional[Path] = None
    download_timeout: int = Field(3600, ge=1)

    # Rendering
    render_workers: int = Field(2, ge=1)
    use_gpu: bool = False
    max_gpu_sessions: int = Field(3, ge=1)
    render_timeout: int = Field(900, ge=1)
    render_crf: int = Field(23, ge=0, le=51)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            JsonConfigSettingsSource(settings_cls, json_file=get_config_path()),
        )

    @property
    def api_keys(self) -> list[str]:
        return [k.strip() for k in self.gemini_api_keys.split(",") if k.strip()]

    def to_config(self) -> Config:
        """Build the core configuration tree."""
        return Config(
            chunks=ChunkConfig(
                target_seconds=self.chunk_minutes * 60,
                max_last_seconds=max(self.chunk_max_last_minutes, self.chunk_minutes) * 60,
            ),
            bounds=MomentBounds(self.min_moment_seconds, self.max_moment_seconds),
            analysis=AnalysisConfig(
                api_keys=self.api_keys,
                model=self.gemini_model,
                parallelism=self.analysis_parallelism,
                max_attempts_per_chunk=self.analysis_max_attempts,
                timeout=self.analysis_timeout,
                temperature=self.analysis_temperature,
            ),
            render=RenderConfig(
                workers=self.render_workers,
                use_gpu=self.use_gpu,
                max_gpu_sessions=self.max_gpu_sessions,
                timeout=self.render_timeout,
                crf=self.render_crf,
            ),
            source=SourceConfig(
                analysis_quality=self.analysis_quality,
                render_quality=self.render_quality,
                cookies_file=self.cookies_file,
                timeout=self.download_timeout,
            ),
            jobs_dir=self.jobs_dir.expanduser(),
            output_dir=self.output_dir.expanduser(),
        )


def load_settings() -> Settings:
    return Settings()


def load_user_config() -> Config:
    """
    Load the core configuration from settings.

    Returns:
        Config object (defaults where nothing is set)
    """
    return load_settings().to_config()


def read_user_file() -> dict[str, Any]:
    """Raw contents of the user settings file."""
    path = get_config_path()
    if not path.exists():
        return {}
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    return data if isinstance(data, dict) else {}


def save_user_config(updates: dict[str, Any]) -> Settings:
    """
    Merge ``updates`` into the user settings file.

    Values are validated against ``Settings`` before anything is written.

    Raises:
        KeyError: If a key is not a known setting
        pydantic.ValidationError: If a value is invalid
    """
    unknown = [k for k in updates if k not in Settings.model_fields]
    if unknown:
        raise KeyError(", ".join(unknown))

    data = read_user_file()
    data.update(updates)
    settings = Settings.model_validate(data)

    stored = settings.model_dump(mode="json", include=set(data))
    atomic_write_text(get_config_path(), json.dumps(stored, indent=2) + "\n")
    return settings
