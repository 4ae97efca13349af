"""Application configuration using Pydantic Settings.

Environment Variable Strategy:
- Every field has a development default for local/CI convenience
- Matching thresholds and pattern tables live in the reconciliation YAML file
  (see load_reconciliation_config), not here
"""

from functools import cached_property
from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ledgerlink.models import PatternType

REPO_ROOT = Path(__file__).resolve().parents[1]


def parse_comma_list(value: str | list[str] | None, default: list[str]) -> list[str]:
    """Parse comma-separated string into list."""
    if value is None:
        return default
    if isinstance(value, list):
        return value
    return [item.strip() for item in value.split(",") if item.strip()]


def parse_pattern_types(values: list[str]) -> list[PatternType]:
    """Resolve pattern type names; an unknown name is a configuration error."""
    pattern_types: list[PatternType] = []
    for value in values:
        try:
            pattern_types.append(PatternType(value))
        except ValueError as exc:
            raise ValueError(f"Unknown pattern type in RECONCILIATION_PATTERN_TYPES: {value}") from exc
    return pattern_types


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    environment: str = Field(
        default="development", validation_alias=AliasChoices("ENVIRONMENT", "ENV")
    )
    debug: bool = False
    git_commit_sha: str = Field(default="unknown", validation_alias="GIT_COMMIT_SHA")

    # Reconciliation
    reconciliation_config_path: Path = Field(
        default=REPO_ROOT / "config" / "reconciliation.yaml",
        validation_alias="RECONCILIATION_CONFIG_PATH",
    )
    # Env format: RECONCILIATION_PATTERN_TYPES="paypal,amazon_orders"
    enabled_pattern_types_str: str | None = Field(
        default=None,
        validation_alias="RECONCILIATION_PATTERN_TYPES",
    )

    @cached_property
    def enabled_pattern_types(self) -> list[PatternType]:
        """Pattern types run by the sequential run-all pass, in order.

        Raises ValueError on an unknown name; checked at startup and by /health.
        """
        return parse_pattern_types(
            parse_comma_list(
                self.enabled_pattern_types_str,
                ["paypal", "card_acquirer", "amazon_orders"],
            )
        )


settings = Settings()
