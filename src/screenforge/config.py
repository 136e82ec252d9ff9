"""Configuration management for screenforge."""

import json
import os
from pathlib import Path
from typing import Literal, Optional, Tuple

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from screenforge.utils import setup_logging


DATA_DIR_NAME = ".screenforge"
CONFIG_FILE_NAME = "config.json"
LOG_FILE_NAME = "screenforge.log"
PROJECT_CONFIG_FILE_NAME = "screenforge.json"

ConfiguredPathKey = Literal["openapi", "output"]


class ProjectPaths(BaseModel):
    """Paths block of a project config file."""

    openapi: Optional[str] = None
    output: Optional[str] = None


class ProjectConfig(BaseModel):
    """Per-project settings read from screenforge.json.

    Paths may be set at the top level or under ``paths``; ``paths`` wins.
    Relative paths are resolved against the directory holding the file.
    """

    app_title: Optional[str] = Field(default=None, alias="appTitle")
    openapi: Optional[str] = None
    output: Optional[str] = None
    paths: ProjectPaths = Field(default_factory=ProjectPaths)

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ScreenforgeConfig(BaseSettings):
    """Pydantic model for screenforge global configuration."""

    env: Literal["test", "dev", "user"] = Field(default="dev", description="Environment name")

    # overridden by ~/.screenforge/config.json
    log_level: str = "INFO"

    output_dir_name: str = Field(
        default="generate-ui",
        description="Directory created next to the OpenAPI file when no output is configured",
    )
    generated_dir_name: str = Field(
        default="generated",
        description="Subdirectory holding the last generated snapshot of every screen",
    )
    overlays_dir_name: str = Field(
        default="overlays",
        description="Subdirectory holding the user-editable screens",
    )
    safe_regeneration: bool = Field(
        default=True,
        description="Reconcile overlays with the new schema. When disabled, overlays are overwritten.",
    )
    remove_orphan_overlays: bool = Field(
        default=True,
        description="Delete overlays whose operation no longer exists in the API description",
    )
    debug: bool = Field(
        default=False,
        description="Print merge decisions for every regenerated screen",
    )

    model_config = SettingsConfigDict(
        env_prefix="SCREENFORGE_",
        extra="ignore",
    )

    @property
    def is_test_env(self) -> bool:
        """Running under pytest or with env=test."""
        return self.env == "test" or os.getenv("PYTEST_CURRENT_TEST") is not None

    @property
    def data_dir_path(self) -> Path:
        """Get app state directory for config and logs."""
        return get_data_dir()


def get_data_dir() -> Path:
    """Resolve ~/.screenforge, honouring SCREENFORGE_CONFIG_DIR."""
    if config_dir := os.getenv("SCREENFORGE_CONFIG_DIR"):
        return Path(config_dir)

    home = os.getenv("HOME", Path.home())
    return Path(home) / DATA_DIR_NAME


# Module-level cache for configuration
_CONFIG_CACHE: Optional[ScreenforgeConfig] = None


class ConfigManager:
    """Manages screenforge configuration."""

    def __init__(self) -> None:
        self.config_dir = get_data_dir()
        self.config_file = self.config_dir / CONFIG_FILE_NAME
        self.config_dir.mkdir(parents=True, exist_ok=True)

    @property
    def config(self) -> ScreenforgeConfig:
        """Get configuration, loading it lazily if needed."""
        return self.load_config()

    def load_config(self) -> ScreenforgeConfig:
        """Load configuration from file or fall back to defaults.

        Environment variables take precedence over file values.
        """
        global _CONFIG_CACHE

        if _CONFIG_CACHE is not None:
            return _CONFIG_CACHE

        if not self.config_file.exists():
            _CONFIG_CACHE = ScreenforgeConfig()
            return _CONFIG_CACHE

        try:
            file_data = json.loads(self.config_file.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON in config file {self.config_file}: {e}")
            raise SystemExit(
                f"Error: config file is not valid JSON: {self.config_file}\n"
                f"  {e}\n"
                f"Fix or delete the file and re-run."
            )

        env_dict = ScreenforgeConfig().model_dump()
        merged_data = dict(file_data)
        for field_name in ScreenforgeConfig.model_fields.keys():
            if f"SCREENFORGE_{field_name.upper()}" in os.environ:
                merged_data[field_name] = env_dict[field_name]

        _CONFIG_CACHE = ScreenforgeConfig(**merged_data)
        return _CONFIG_CACHE

    def save_config(self, config: ScreenforgeConfig) -> None:
        """Save configuration to file and invalidate cache."""
        global _CONFIG_CACHE
        self.config_file.write_text(json.dumps(config.model_dump(mode="json"), indent=2))
        _CONFIG_CACHE = None


def reset_config_cache() -> None:
    """Forget the cached configuration (used by tests and after env changes)."""
    global _CONFIG_CACHE
    _CONFIG_CACHE = None


# --- Project config ---


def find_project_config(start_dir: Path) -> Tuple[Optional[Path], Optional[ProjectConfig]]:
    """Walk up from start_dir looking for a readable screenforge.json.

    Unreadable or invalid files are skipped, so the search continues with the
    parent directory.
    """
    directory = Path(start_dir).resolve()

    while True:
        candidate = directory / PROJECT_CONFIG_FILE_NAME
        if candidate.is_file():
            parsed = _read_project_config(candidate)
            if parsed is not None:
                return candidate, parsed

        if directory.parent == directory:
            return None, None
        directory = directory.parent


def _read_project_config(config_path: Path) -> Optional[ProjectConfig]:
    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Ignoring unreadable project config {config_path}: {e}")
        return None
    if not isinstance(data, dict):
        logger.warning(f"Ignoring project config {config_path}: expected a JSON object")
        return None
    try:
        return ProjectConfig.model_validate(data)
    except ValidationError as e:
        logger.warning(f"Ignoring invalid project config {config_path}: {e}")
        return None


def pick_configured_path(
    config: Optional[ProjectConfig], key: ConfiguredPathKey
) -> Optional[str]:
    """Return the configured path for key, preferring the ``paths`` block."""
    if config is None:
        return None

    scoped = getattr(config.paths, key)
    if isinstance(scoped, str) and scoped.strip():
        return scoped.strip()

    top_level = getattr(config, key)
    if isinstance(top_level, str) and top_level.strip():
        return top_level.strip()

    return None


def resolve_optional_path(
    cli_value: Optional[str | Path],
    configured_value: Optional[str],
    config_path: Optional[Path],
) -> Optional[Path]:
    """CLI value (relative to cwd) first, then the configured value (relative to the config file)."""
    if cli_value is not None and str(cli_value).strip():
        return (Path.cwd() / cli_value).resolve()
    if configured_value and config_path is not None:
        return (config_path.parent / configured_value).resolve()
    return None


def resolve_output_root(
    project_root: Path,
    cli_output: Optional[str | Path],
    project_config: Optional[ProjectConfig],
    config_path: Optional[Path],
    output_dir_name: str = "generate-ui",
) -> Path:
    """Decide where generated and overlay snapshots live.

    Precedence: --output, project config, <project>/src, <project>/frontend/src,
    then <project> itself.
    """
    explicit = resolve_optional_path(
        cli_output, pick_configured_path(project_config, "output"), config_path
    )
    if explicit is not None:
        return explicit

    src_root = project_root / "src"
    if src_root.exists():
        return src_root / output_dir_name

    frontend_src_root = project_root / "frontend" / "src"
    if frontend_src_root.exists():
        return frontend_src_root / output_dir_name

    return project_root / output_dir_name


# Logging initialization


def init_cli_logging() -> None:  # pragma: no cover
    """Initialize logging for CLI commands - file only.

    CLI commands should not log to stdout to avoid interfering with
    command output.
    """
    log_level = os.getenv("SCREENFORGE_LOG_LEVEL", "INFO")
    setup_logging(log_level=log_level, log_to_file=True, log_file=get_data_dir() / LOG_FILE_NAME)
