"""Configuration management for receiptable."""

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from receiptable.models.printer import PrinterConfig
from receiptable.models.template import Template, TemplateValidationError, parse_and_validate

logger = logging.getLogger(__name__)


class TemplateLoadResult(BaseModel):
    """Result of loading templates, including any warnings."""

    templates: dict[str, Template] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)


class AppConfig(BaseModel):
    """Application configuration loaded from config.yaml."""

    # Printer connection restored at startup (saved on successful connect)
    printer: PrinterConfig | None = None
    templates_dir: Path = Path("./templates")
    # API key for external access (optional, if not set API is open)
    api_key: str | None = None
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])
    cut_paper: bool = True
    feed_lines: int = Field(default=3, ge=0)
    persist_connection: bool = True


class Settings(BaseSettings):
    """Environment-based settings."""

    model_config = SettingsConfigDict(
        env_prefix="RECEIPTABLE_",
        env_file=".env",
        extra="ignore",
    )

    config_file: Path = Path("config.yaml")
    host: str = "127.0.0.1"
    port: int = 8080
    debug: bool = False


def load_config(config_path: Path) -> AppConfig:
    """Load application configuration from YAML file."""
    if not config_path.exists():
        return AppConfig()

    with open(config_path) as f:
        data = yaml.safe_load(f) or {}

    # YAML returns None for empty keys
    if data.get("cors_origins") is None:
        data.pop("cors_origins", None)

    return AppConfig.model_validate(data)


def save_config(config: AppConfig, config_path: Path) -> None:
    """Write configuration back to YAML."""
    config_path.parent.mkdir(parents=True, exist_ok=True)
    data = config.model_dump(mode="json", exclude_none=True)
    with open(config_path, "w") as f:
        yaml.safe_dump(data, f, sort_keys=False)
    logger.info(f"Configuration saved to {config_path}")


def resolve_path(path: Path, config_path: Path) -> Path:
    """Resolve a path from the config file relative to the config file's directory."""
    if path.is_absolute():
        return path
    return config_path.parent / path


def load_templates(templates_dir: Path) -> TemplateLoadResult:
    """Load all receipt templates (``*.json``) from a directory.

    Files starting with an underscore are skipped. Invalid templates are
    skipped with a warning rather than failing startup.
    """
    result = TemplateLoadResult()

    if not templates_dir.exists():
        return result

    for template_file in sorted(templates_dir.glob("*.json")):
        # Skip example/reference templates
        if template_file.name.startswith("_"):
            continue

        try:
            template = parse_and_validate(template_file.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, TemplateValidationError) as e:
            message = f"Failed to load template {template_file.name}: {e}"
            logger.warning(message)
            result.warnings.append(message)
            continue

        if template.id in result.templates:
            result.warnings.append(f"Duplicate template id '{template.id}' in {template_file.name}; replaced")
        result.templates[template.id] = template

    return result


# Global settings instance
settings = Settings()
