"""Tests for configuration helpers."""

import pytest

from ledgerlink.config import REPO_ROOT, Settings, parse_comma_list


def test_parse_comma_list_defaults() -> None:
    assert parse_comma_list(None, ["a"]) == ["a"]


def test_parse_comma_list_accepts_list() -> None:
    assert parse_comma_list(["x", "y"], ["a"]) == ["x", "y"]


def test_parse_comma_list_splits_string() -> None:
    assert parse_comma_list("x, y, ,z", ["a"]) == ["x", "y", "z"]


def test_enabled_pattern_types_default_order(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("RECONCILIATION_PATTERN_TYPES", raising=False)
    settings = Settings(_env_file=None)
    assert settings.enabled_pattern_types == ["paypal", "card_acquirer", "amazon_orders"]


def test_enabled_pattern_types_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RECONCILIATION_PATTERN_TYPES", "amazon_orders, paypal")
    settings = Settings(_env_file=None)
    assert settings.enabled_pattern_types == ["amazon_orders", "paypal"]


def test_reconciliation_config_path_defaults_to_repo_config(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("RECONCILIATION_CONFIG_PATH", raising=False)
    settings = Settings(_env_file=None)
    assert settings.reconciliation_config_path == REPO_ROOT / "config" / "reconciliation.yaml"
    assert settings.reconciliation_config_path.exists()


def test_environment_accepts_env_alias(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("ENVIRONMENT", raising=False)
    monkeypatch.setenv("ENV", "staging")
    assert Settings(_env_file=None).environment == "staging"


def test_enabled_pattern_types_rejects_unknown_name(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RECONCILIATION_PATTERN_TYPES", "paypal,amazon")
    settings = Settings(_env_file=None)
    with pytest.raises(ValueError, match="RECONCILIATION_PATTERN_TYPES: amazon"):
        _ = settings.enabled_pattern_types
