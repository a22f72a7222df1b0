"""Configuration management for bundlecheck using Pydantic models."""

import json
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

CONFIG_FILE_NAME = ".bundlecheck.json"


class ValidationMode(str, Enum):
    """Pipeline modes. Debug adds the advisory lint and hint stages."""
    STANDARD = "standard"
    DEBUG = "debug"


class ReferencePolicy(str, Enum):
    """Bundle reference checking. Unresolved references are warnings under allow_external."""
    OFF = "off"
    IN_BUNDLE = "in_bundle"
    ALLOW_EXTERNAL = "allow_external"


class OutputFormat(str, Enum):
    """Report formats."""
    TABLE = "table"
    JSON = "json"
    MARKDOWN = "markdown"


class LogLevel(str, Enum):
    """Logging levels."""
    ERROR = "error"
    WARN = "warn"
    INFO = "info"
    DEBUG = "debug"


class ValidationConfig(BaseModel):
    """Validation configuration section."""
    mode: ValidationMode = ValidationMode.STANDARD
    timeout_seconds: float | None = Field(alias="timeoutSeconds", default=None)
    check_details: bool | None = Field(alias="checkDetails", default=None)
    references: ReferencePolicy = ReferencePolicy.OFF

    @field_validator("timeout_seconds")
    @classmethod
    def validate_timeout(cls, v):
        if v is not None and v <= 0:
            raise ValueError("timeout_seconds must be > 0")
        return v

    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)


class SuggestionConfig(BaseModel):
    """Rule suggestion configuration section."""
    enabled: bool = False
    max_examples: int = Field(alias="maxExamples", default=5)

    @field_validator("max_examples")
    @classmethod
    def validate_max_examples(cls, v):
        if not (1 <= v <= 20):
            raise ValueError(f"max_examples must be between 1-20, got: {v}")
        return v

    model_config = ConfigDict(populate_by_name=True)


class SourcesConfig(BaseModel):
    """Input file locations, relative to the working directory."""
    schema_path: str | None = Field(alias="schema", default=None)
    rules_path: str | None = Field(alias="rules", default=None)
    hints_path: str | None = Field(alias="hints", default=None)
    object_model_schema: str | None = Field(alias="objectModelSchema", default=None)

    model_config = ConfigDict(populate_by_name=True)


class OutputConfig(BaseModel):
    """Output configuration section."""
    format: OutputFormat = OutputFormat.TABLE

    model_config = ConfigDict(use_enum_values=True)


class LoggingConfig(BaseModel):
    """Logging configuration section."""
    level: LogLevel = LogLevel.WARN

    model_config = ConfigDict(use_enum_values=True)


class BundleCheckConfig(BaseModel):
    """Complete bundlecheck configuration model."""
    validation: ValidationConfig = Field(default_factory=ValidationConfig)
    suggestions: SuggestionConfig = Field(default_factory=SuggestionConfig)
    sources: SourcesConfig = Field(default_factory=SourcesConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = ConfigDict(extra="forbid")


class ValidationOptions(BaseModel):
    """Options for a single validation run."""
    mode: ValidationMode = ValidationMode.STANDARD
    timeout_seconds: float | None = None
    suggestions: bool = False
    check_details: bool | None = None
    max_examples: int = 5
    references: ReferencePolicy = ReferencePolicy.OFF

    @field_validator("timeout_seconds")
    @classmethod
    def validate_timeout(cls, v):
        if v is not None and v <= 0:
            raise ValueError("timeout_seconds must be > 0")
        return v

    @property
    def is_debug(self) -> bool:
        return self.mode == ValidationMode.DEBUG

    @property
    def details_checked(self) -> bool:
        """Details contract check; follows the mode unless set explicitly."""
        if self.check_details is None:
            return self.is_debug
        return self.check_details

    @classmethod
    def from_config(cls, config: BundleCheckConfig) -> "ValidationOptions":
        return cls(
            mode=config.validation.mode,
            timeout_seconds=config.validation.timeout_seconds,
            suggestions=config.suggestions.enabled,
            check_details=config.validation.check_details,
            max_examples=config.suggestions.max_examples,
            references=config.validation.references,
        )


def load_config(config_path: str | Path | None = None) -> BundleCheckConfig:
    """Load configuration from file with fallback to defaults.

    Args:
        config_path: Optional path to configuration file. If None, searches
                    current directory and parents for .bundlecheck.json

    Returns:
        BundleCheckConfig: Loaded and validated configuration

    Raises:
        ValueError: If configuration is invalid
    """
    if config_path is None:
        config_path = find_config_file()
    else:
        config_path = Path(config_path)

    if config_path and config_path.exists():
        try:
            with open(config_path, encoding="utf-8") as f:
                config_data = json.load(f)
            return BundleCheckConfig(**config_data)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in config file {config_path}: {e}")
        except Exception as e:
            raise ValueError(f"Failed to load config from {config_path}: {e}")
    else:
        return create_default_config()


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Find .bundlecheck.json by searching up the directory tree.

    Args:
        start_dir: Directory to start search from (default: current directory)

    Returns:
        Path to config file if found, None otherwise
    """
    if start_dir is None:
        start_dir = Path.cwd()

    current = Path(start_dir).resolve()

    while True:
        config_file = current / CONFIG_FILE_NAME
        if config_file.exists():
            return config_file

        parent = current.parent
        if parent == current:
            break
        current = parent

    return None


def create_default_config() -> BundleCheckConfig:
    """Create default configuration: standard mode, no suggestions."""
    return BundleCheckConfig()
