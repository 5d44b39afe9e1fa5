"""Pydantic settings loaded from YAML configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pydantic
import yaml
from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator, model_validator

from alertrelay.exceptions import ConfigError

DEFAULT_CONFIG_PATH = Path("/app/config/config.yaml")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    format: str = "json"


class Settings(BaseModel):
    """Root settings container.

    Keys in the YAML file use the camelCase names of the original relay
    deployment (``sslEnabled``, ``gitlabURL``, ...). Attribute access uses
    the snake_case field names.
    """

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        extra="ignore",
    )

    port: str
    ssl_enabled: bool = Field(default=False, alias="sslEnabled")
    ssl_cert_file_name: str = Field(default="", alias="sslCertFileName")
    ssl_key_file_name: str = Field(default="", alias="sslKeyFileName")
    gitlab_url: str = Field(alias="gitlabURL")
    gitlab_api_prefix: str = Field(alias="gitlabAPIPrefix")
    gitlab_access_token: SecretStr = Field(alias="gitlabAccessToken")
    gitlab_project_id: str = Field(alias="gitlabProjectID")
    # Off by default: GitLab instances behind self-signed certificates.
    gitlab_verify_ssl: bool = Field(default=False, alias="gitlabVerifySSL")
    gitlab_timeout_secs: float = Field(default=10.0, gt=0, alias="gitlabTimeoutSecs")
    max_body_bytes: int = Field(default=64 * 1024 * 1024, gt=0, alias="maxBodyBytes")
    logging: LoggingConfig = LoggingConfig()

    @field_validator("port")
    @classmethod
    def _check_port(cls, value: str) -> str:
        _, _, port = value.rpartition(":")
        if not port.isdigit() or not 0 < int(port) < 65536:
            raise ValueError(f"invalid listen address {value!r}")
        return value

    @field_validator("gitlab_access_token")
    @classmethod
    def _check_token(cls, value: SecretStr) -> SecretStr:
        token = value.get_secret_value()
        # Sent verbatim as an HTTP header value.
        if not token.isascii() or not token.isprintable():
            raise ValueError("token must be printable ASCII")
        return value

    @model_validator(mode="after")
    def _check_tls_material(self) -> Settings:
        if self.ssl_enabled and not (self.ssl_cert_file_name and self.ssl_key_file_name):
            raise ValueError("sslEnabled requires sslCertFileName and sslKeyFileName")
        return self

    @property
    def listen_host(self) -> str:
        """Host part of ``port``; empty means all interfaces."""
        host, _, _ = self.port.rpartition(":")
        return host.strip("[]")

    @property
    def listen_port(self) -> int:
        return int(self.port.rpartition(":")[2])


def load_settings(path: str | Path | None = None) -> Settings:
    """Load settings from a YAML file.

    Args:
        path: Path to YAML config. Defaults to /app/config/config.yaml.

    Returns:
        Parsed Settings instance.

    Raises:
        ConfigError: The file is missing, is not a YAML mapping, or
            lacks a required setting.
    """
    config_path = Path(path) if path else DEFAULT_CONFIG_PATH

    try:
        with open(config_path) as f:
            raw = yaml.safe_load(f)
    except OSError as exc:
        raise ConfigError(f"cannot read config {config_path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"invalid YAML in {config_path}: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigError(f"config {config_path} must be a YAML mapping")

    data: dict[str, Any] = raw
    try:
        return Settings.model_validate(data)
    except pydantic.ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'settings'}: {err['msg']}"
            for err in exc.errors(include_input=False)
        )
        raise ConfigError(f"invalid config {config_path}: {problems}") from exc
