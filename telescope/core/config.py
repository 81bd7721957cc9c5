"""Configuration management for Telescope."""

import sys
from pathlib import Path
from typing import Optional, Literal

import yaml
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, field_validator


class TranslationConfig(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    endpoint: str = ""
    model_type: str = "gemini"
    model: str = "gemini-2.0-flash"
    timeout_s: float = 30.0

    @field_validator('timeout_s')
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeout_s must be positive")
        return v


class SearchConfig(BaseModel):
    max_results: int = 1000
    # degrade: log mid-query index failures and return an empty result
    # propagate: raise IndexQueryError to the caller
    index_error_policy: Literal["degrade", "propagate"] = "degrade"

    @field_validator('max_results')
    @classmethod
    def validate_max_results(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_results must be at least 1")
        return v


class AccessConfig(BaseModel):
    store_path: Path = Path.home() / ".config" / "telescope" / "grants.json"
    store_key: str = "homeFolderBookmarks"
    picker_message: str = "Pick the folder(s) Telescope is allowed to search."
    add_message: str = "Pick additional folder(s) Telescope can search."

    @field_validator('store_path')
    @classmethod
    def expand_store_path(cls, v: Path) -> Path:
        return Path(v).expanduser()


class IndexConfig(BaseModel):
    mdfind_path: str = "mdfind"


class LoggingConfig(BaseModel):
    level: str = "WARNING"
    file: Optional[Path] = None


class Config(BaseModel):
    """Main configuration for Telescope."""

    translation: TranslationConfig = Field(default_factory=TranslationConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
    access: AccessConfig = Field(default_factory=AccessConfig)
    index: IndexConfig = Field(default_factory=IndexConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "Config":
        """Load configuration from YAML file, or defaults when none exists."""
        if config_path is None:
            candidates = [
                Path("telescope.yaml"),
                Path.home() / ".config" / "telescope" / "config.yaml",
                Path("/etc/telescope/config.yaml"),
            ]
            for candidate in candidates:
                if candidate.exists():
                    config_path = candidate
                    break
            else:
                logger.debug(
                    f"No config file found, using defaults. Searched: {[str(c) for c in candidates]}"
                )
                return cls()

        logger.info(f"Loading config from: {config_path}")
        with open(config_path, 'r') as f:
            data = yaml.safe_load(f) or {}

        return cls(**data)

    def save(self, config_path: Path) -> None:
        """Save configuration to YAML file."""
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, 'w') as f:
            yaml.safe_dump(self.model_dump(mode="json"), f, default_flow_style=False)


def setup_logging(config: Config) -> None:
    """Install stderr (and optional file) sinks."""
    logger.remove()
    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>",
        level=config.logging.level
    )

    if config.logging.file:
        log_file = Path(config.logging.file).expanduser()
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            rotation="1 day",
            retention="7 days",
            level="DEBUG"
        )
