"""Dataverse client configuration.

Loaded from a YAML file under a top-level ``dataverse:`` key, or from
DATAVERSE_* environment variables. Environment variables ARE supported in
YAML using ${VAR_NAME} and ${VAR_NAME:-default} syntax.

Example config.yaml:

    dataverse:
      organization_url: https://contoso.crm.dynamics.com
      tenant_id: ${DATAVERSE_TENANT_ID}
      client_id: ${DATAVERSE_CLIENT_ID}
      client_secret: ${DATAVERSE_CLIENT_SECRET}
      timeout_seconds: 120
"""

import logging
import os
import re
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from dataverse_client.errors import InvalidConfigurationError
from dataverse_client.security import mask_credential

logger = logging.getLogger(__name__)

DEFAULT_API_VERSION = "9.2"
DEFAULT_AUTHORITY_URL = "https://login.microsoftonline.com"

ENV_PREFIX = "DATAVERSE_"

_ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+)(?::-(([^}]*))?)?\}")
_API_VERSION_PATTERN = re.compile(r"^\d+\.\d+$")


def load_yaml(path: Path) -> Dict[str, Any]:
    """Load YAML file and return dict."""
    if not path.exists():
        return {}
    with open(path, "r") as f:
        return yaml.safe_load(f) or {}


def _expand_env_vars(data: Any) -> Any:
    """Recursively expand ${VAR_NAME} and ${VAR_NAME:-default} environment variables in config data."""
    if isinstance(data, dict):
        return {key: _expand_env_vars(value) for key, value in data.items()}
    elif isinstance(data, list):
        return [_expand_env_vars(item) for item in data]
    elif isinstance(data, str):

        def replacer(match):
            var_name = match.group(1)
            default_value = match.group(2) if match.group(2) is not None else match.group(0)
            return os.getenv(var_name, default_value)

        return _ENV_VAR_PATTERN.sub(replacer, data)
    else:
        return data


@dataclass
class DataverseConfig:
    """Connection settings for one Dataverse environment.

    Attributes:
        organization_url: Environment URL, e.g. https://contoso.crm.dynamics.com
        tenant_id: Azure AD tenant (directory) id
        client_id: App registration client id
        client_secret: App registration secret
        api_version: Web API version used in request URLs
        authority_url: Identity platform authority
        timeout_seconds: Default total timeout per HTTP exchange
        refresh_buffer_seconds: Tokens are refreshed this long before expiry
        max_connections: HTTP connection pool size
    """

    organization_url: str
    tenant_id: str = ""
    client_id: str = ""
    client_secret: str = ""
    api_version: str = DEFAULT_API_VERSION
    authority_url: str = DEFAULT_AUTHORITY_URL
    timeout_seconds: float = 120
    refresh_buffer_seconds: int = 300
    max_connections: int = 20

    @property
    def api_base_url(self) -> str:
        return f"{self.organization_url.rstrip('/')}/api/data/v{self.api_version}"

    @property
    def token_url(self) -> str:
        return f"{self.authority_url.rstrip('/')}/{self.tenant_id}/oauth2/v2.0/token"

    @property
    def scope(self) -> str:
        return f"{self.organization_url.rstrip('/')}/.default"

    def validate(self, require_credentials: bool = True) -> None:
        """Validate configuration for correctness and constraints.

        Raises:
            InvalidConfigurationError: On the first missing or invalid setting
        """
        if not self.organization_url:
            raise InvalidConfigurationError("organization_url is required")
        if not self.organization_url.startswith(("http://", "https://")):
            raise InvalidConfigurationError(
                f"organization_url must start with http:// or https://, got: {self.organization_url!r}"
            )

        if require_credentials:
            for name in ("tenant_id", "client_id", "client_secret"):
                if not getattr(self, name):
                    raise InvalidConfigurationError(f"{name} is required")

        if not _API_VERSION_PATTERN.match(str(self.api_version)):
            raise InvalidConfigurationError(
                f"api_version must look like '9.2', got {self.api_version!r}"
            )
        if self.timeout_seconds <= 0:
            raise InvalidConfigurationError(
                f"timeout_seconds must be > 0, got {self.timeout_seconds}"
            )
        if self.refresh_buffer_seconds < 0:
            raise InvalidConfigurationError(
                f"refresh_buffer_seconds must be >= 0, got {self.refresh_buffer_seconds}"
            )
        if self.max_connections < 1:
            raise InvalidConfigurationError(
                f"max_connections must be >= 1, got {self.max_connections}"
            )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DataverseConfig":
        """Build from a mapping, ignoring unknown keys and coercing numeric settings."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning(f"Ignoring unknown dataverse config keys: {unknown}")

        values = {key: value for key, value in data.items() if key in known}
        if "organization_url" not in values:
            raise InvalidConfigurationError("organization_url is required")

        try:
            for key, cast in (
                ("timeout_seconds", float),
                ("refresh_buffer_seconds", int),
                ("max_connections", int),
            ):
                if values.get(key) is not None:
                    values[key] = cast(values[key])
        except (TypeError, ValueError) as e:
            raise InvalidConfigurationError(f"Invalid numeric setting: {e}", cause=e) from e

        for key in ("api_version", "tenant_id", "client_id", "client_secret"):
            if values.get(key) is not None:
                values[key] = str(values[key])

        return cls(**values)

    @classmethod
    def from_env(
        cls,
        dotenv_path: Optional[Path] = None,
        prefix: str = ENV_PREFIX,
    ) -> "DataverseConfig":
        """Build from DATAVERSE_* environment variables.

        Args:
            dotenv_path: .env file loaded first (existing variables win)
            prefix: Variable name prefix

        Raises:
            InvalidConfigurationError: If required variables are missing or invalid
        """
        if dotenv_path is not None:
            load_dotenv(dotenv_path)

        data: Dict[str, Any] = {}
        for f in fields(cls):
            value = os.getenv(f"{prefix}{f.name.upper()}")
            if value:
                data[f.name] = value

        config = cls.from_dict(data)
        config.validate()
        return config

    def __repr__(self) -> str:
        return (
            f"DataverseConfig(organization_url={self.organization_url!r}, "
            f"tenant_id={self.tenant_id!r}, client_id={self.client_id!r}, "
            f"client_secret={mask_credential(self.client_secret)!r}, "
            f"api_version={self.api_version!r})"
        )


def load_config(
    config_path: Path,
    overrides: Optional[Dict[str, Any]] = None,
) -> DataverseConfig:
    """Load Dataverse configuration from a YAML file.

    Raises:
        FileNotFoundError: If the file does not exist
        InvalidConfigurationError: Missing 'dataverse:' section or invalid settings
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    logger.info(f"Loading configuration from file: {config_path}")
    yaml_data = _expand_env_vars(load_yaml(config_path))

    section = yaml_data.get("dataverse")
    if not isinstance(section, dict):
        raise InvalidConfigurationError(
            f"Invalid config file {config_path}: missing 'dataverse:' section"
        )

    if overrides:
        logger.debug(f"Applying overrides: {list(overrides.keys())}")
        section = {**section, **overrides}

    config = DataverseConfig.from_dict(section)
    config.validate()

    logger.debug(
        "Configuration loaded",
        extra={"http_url": config.api_base_url, "client_id": config.client_id},
    )
    return config


__all__ = [
    "DataverseConfig",
    "load_config",
    "load_yaml",
    "DEFAULT_API_VERSION",
    "DEFAULT_AUTHORITY_URL",
]
