"""Configuration with JSON file, secrets.yml, and env variable support.

Load order (later overrides earlier):
1. config.json - base configuration
2. secrets.yml - sensitive values (service keys, S3 credentials)
3. Environment variables - runtime overrides (prefix FORMVAULT_)
"""

import json
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from formvault.enums import StorageBackendKind

ENV_PREFIX = "FORMVAULT_"


def _find_repo_root(*, start: Path) -> Path:
    """Best-effort repository root discovery.

    Relative directories in the config (e.g. the temporary URL directory) are
    resolved against the first directory containing `pyproject.toml`, falling
    back to the current working directory.
    """

    try:
        start = start.resolve()
        for p in [start, *start.parents]:
            if (p / "pyproject.toml").exists():
                return p
    except Exception:
        pass

    return Path.cwd()


def _flatten_secrets_mapping(secrets: dict) -> dict:
    """Flatten secrets mapping into FormVaultConfig-compatible keys.

    Converts nested YAML structure to flat config keys:
        supabase.service_key -> supabase_service_key
        s3.access_key_id -> s3_access_key_id
    """
    flat = {}
    for section, values in secrets.items():
        if isinstance(values, dict):
            for key, value in values.items():
                flat[f"{section}_{key}"] = value
        else:
            flat[section] = values
    return flat


def _load_secrets(secrets_path: Path) -> dict:
    """Load and flatten secrets from YAML file."""
    if not secrets_path.exists():
        return {}

    with open(secrets_path) as f:
        secrets = yaml.safe_load(f) or {}

    if not isinstance(secrets, dict):
        return {}

    return _flatten_secrets_mapping(secrets)


def load_raw_secrets(secrets_path: Path) -> dict[str, Any]:
    """Load raw secrets.yml as a mapping.

    Returns an empty dict if the file does not exist or is invalid.
    """
    if not secrets_path.exists():
        return {}
    try:
        with secrets_path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        return data if isinstance(data, dict) else {}
    except yaml.YAMLError:
        return {}


class FormVaultConfig(BaseSettings):
    """Configuration with JSON file + secrets.yml + env var support.

    Prefix: FORMVAULT_ (e.g., FORMVAULT_SUPABASE_URL)
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Supabase project
    supabase_url: str = Field(...)
    supabase_service_key: str = Field(...)

    # Object storage
    storage_backend: StorageBackendKind = Field(default=StorageBackendKind.SUPABASE)
    storage_bucket: str = Field(
        default="forms",
        description="Logical bucket holding every uploaded submission file.",
    )
    s3_endpoint_url: str | None = Field(
        default=None,
        description=(
            "S3-compatible endpoint, e.g. the Supabase S3 gateway "
            "(https://<project>.supabase.co/storage/v1/s3)."
        ),
    )
    s3_region: str = Field(default="us-east-1")
    s3_access_key_id: str | None = Field(default=None)
    s3_secret_access_key: str | None = Field(default=None)
    http_timeout_seconds: float = Field(default=30.0)

    # Database settings
    database_url: str = Field(default="sqlite+aiosqlite:///./formvault.db")

    # Signed URL lifetimes
    interactive_url_ttl_seconds: int = Field(
        default=3600,
        description="TTL of access URLs issued for on-screen display.",
    )
    export_url_ttl_seconds: int = Field(
        default=432000,
        description="TTL of access URLs written into CSV exports (5 days).",
    )
    signed_url_safety_margin_seconds: int = Field(
        default=60,
        description="Cached URLs closer than this to expiry are re-issued.",
    )

    # Media display
    transcode_quality: int = Field(default=80)
    temp_url_dir: str = Field(default="./temp_media")

    # Uploads
    upload_cache_control: str = Field(default="3600")

    # API settings
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8750)

    log_level: str = Field(default="INFO")

    @field_validator(
        "interactive_url_ttl_seconds",
        "export_url_ttl_seconds",
    )
    @classmethod
    def _positive_ttl(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("URL TTLs must be positive")
        return value

    @field_validator("transcode_quality")
    @classmethod
    def _quality_range(cls, value: int) -> int:
        if not 1 <= value <= 100:
            raise ValueError("transcode_quality must be between 1 and 100")
        return value

    @field_validator("supabase_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @model_validator(mode="after")
    def _check_margin(self) -> "FormVaultConfig":
        if self.signed_url_safety_margin_seconds < 0:
            raise ValueError("signed_url_safety_margin_seconds must not be negative")
        if self.signed_url_safety_margin_seconds >= self.interactive_url_ttl_seconds:
            raise ValueError(
                "signed_url_safety_margin_seconds must be smaller than "
                "interactive_url_ttl_seconds"
            )
        return self

    def model_post_init(self, __context) -> None:  # type: ignore[override]
        """Resolve the temporary URL directory against the repository root."""
        temp_dir = Path(self.temp_url_dir).expanduser()
        if not temp_dir.is_absolute():
            temp_dir = _find_repo_root(start=Path(__file__)) / temp_dir
        self.temp_url_dir = str(temp_dir.resolve())

    @classmethod
    def from_json_file(
        cls,
        config_path: str = "config.json",
        secrets_path: str = "secrets.yml",
    ) -> "FormVaultConfig":
        """Load config from JSON + secrets.yml with env var overrides.

        Args:
            config_path: Path to JSON config file.
            secrets_path: Path to secrets YAML file.

        Returns:
            Configured FormVaultConfig instance.
        """
        config_data = {}

        json_path = Path(config_path)
        if json_path.exists():
            with open(json_path) as f:
                config_data = json.load(f)

        # Merge secrets (overrides JSON values)
        config_data.update(_load_secrets(Path(secrets_path)))

        # Drop keys whose env var is set so env vars win over files
        for key in list(config_data):
            if f"{ENV_PREFIX}{key.upper()}" in os.environ:
                del config_data[key]

        return cls(**config_data)
