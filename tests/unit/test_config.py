"""Tests for configuration loading and validation."""

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from formvault.config import FormVaultConfig, _flatten_secrets_mapping
from formvault.enums import StorageBackendKind


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for key in ["FORMVAULT_SUPABASE_URL", "FORMVAULT_SUPABASE_SERVICE_KEY", "FORMVAULT_EXPORT_URL_TTL_SECONDS"]:
        monkeypatch.delenv(key, raising=False)


def _config(**kw) -> FormVaultConfig:
    return FormVaultConfig(supabase_url="https://abc.supabase.co/", supabase_service_key="k", **kw)


def test_defaults():
    config = _config()
    assert config.supabase_url == "https://abc.supabase.co"
    assert config.storage_backend == StorageBackendKind.SUPABASE
    assert config.storage_bucket == "forms"
    assert config.interactive_url_ttl_seconds == 3600
    assert config.export_url_ttl_seconds == 432000
    assert config.signed_url_safety_margin_seconds == 60
    assert Path(config.temp_url_dir).is_absolute()


def test_missing_supabase_settings_rejected():
    with pytest.raises(ValidationError):
        FormVaultConfig()


@pytest.mark.parametrize(
    "overrides",
    [
        {"export_url_ttl_seconds": 0},
        {"interactive_url_ttl_seconds": -5},
        {"transcode_quality": 0},
        {"transcode_quality": 101},
        {"signed_url_safety_margin_seconds": -1},
        {"signed_url_safety_margin_seconds": 3600},
    ],
)
def test_invalid_values_rejected(overrides):
    with pytest.raises(ValidationError):
        _config(**overrides)


def test_flatten_secrets_mapping():
    flat = _flatten_secrets_mapping({"supabase": {"service_key": "k"}, "log_level": "DEBUG"})
    assert flat == {"supabase_service_key": "k", "log_level": "DEBUG"}


def test_from_json_file_merges_secrets_and_env(tmp_path: Path, monkeypatch):
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({"storage_bucket": "uploads", "export_url_ttl_seconds": 7200}))
    secrets_path = tmp_path / "secrets.yml"
    secrets_path.write_text("supabase:\n  url: https://abc.supabase.co\n  service_key: secret\n")
    monkeypatch.setenv("FORMVAULT_EXPORT_URL_TTL_SECONDS", "86400")

    config = FormVaultConfig.from_json_file(str(config_path), str(secrets_path))

    assert config.storage_bucket == "uploads"
    assert config.supabase_service_key == "secret"
    assert config.export_url_ttl_seconds == 86400
