"""Engine configuration using Pydantic Settings."""

from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Environment
    environment: str = "development"
    """Current environment (development, staging, production)."""

    debug: bool = False
    """Enable debug mode."""

    log_format: str | None = None
    """Logging format override (json or console). Defaults by environment."""

    # Tax tables
    default_tax_year: int = 2025
    """Tax year used when a caller does not pass one explicitly."""

    state_rules_dir: Path | None = None
    """Directory holding `<year>.yaml` state rule files.

    When unset, the rule files packaged with `taxengine.state` are used.
    """

    @field_validator("log_format", mode="before")
    @classmethod
    def normalize_log_format(cls, value: object) -> str | None:
        """Lower-case the log format and reject unknown renderers."""
        if value is None:
            return None
        text = str(value).strip().lower()
        if not text:
            return None
        if text not in {"json", "console"}:
            raise ValueError("LOG_FORMAT must be 'json' or 'console'.")
        return text

    @field_validator("default_tax_year")
    @classmethod
    def validate_default_tax_year(cls, value: int) -> int:
        """Keep the default year within a plausible range."""
        if value < 2000 or value > 2100:
            raise ValueError("DEFAULT_TAX_YEAR must be a four-digit year.")
        return value


try:
    settings = Settings()
except Exception as exc:
    env_file = Path(".env")
    root_error = str(exc)
    suggestions = [
        "LOG_FORMAT accepts 'json' or 'console'.",
        "DEFAULT_TAX_YEAR must be a year such as 2025.",
        "STATE_RULES_DIR must point to a directory of <year>.yaml files.",
    ]

    raise RuntimeError(
        "Failed to initialize engine settings. "
        f"Check environment variables in {env_file.resolve() if env_file.exists() else '.env'}.\n"
        + f"Error: {root_error}\n"
        + "\n".join(suggestions)
    ) from exc
