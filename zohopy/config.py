"""Credential profiles for the Zoho API client.

Copyright (c) 2024 Felix Geilert
"""

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config.json"
CONFIG_PATH_ENV = "ZOHO_CONFIG_PATH"
DEFAULT_DATA_CENTER = "com"
DEFAULT_REDIRECT_URI = "http://localhost:8080/callback"
DEFAULT_SCOPES = ("ZohoCRM.modules.ALL", "ZohoCRM.settings.ALL", "ZohoBooks.fullaccess.all")

# camelCase keys written by other Zoho tooling
_KEY_ALIASES = {
    "clientId": "client_id",
    "clientSecret": "client_secret",
    "refreshToken": "refresh_token",
    "dataCenter": "data_center",
    "redirectUri": "redirect_uri",
    "organizationId": "organization_id",
}


@dataclass(frozen=True)
class ZohoCredential:
    """OAuth client credentials for one Zoho account and data center."""

    client_id: str
    client_secret: str
    refresh_token: str | None = None
    data_center: str = DEFAULT_DATA_CENTER
    scopes: tuple[str, ...] = field(default=DEFAULT_SCOPES)
    redirect_uri: str = DEFAULT_REDIRECT_URI
    organization_id: str | None = None

    @property
    def accounts_url(self) -> str:
        return f"https://accounts.zoho.{self.data_center}"

    @property
    def api_url(self) -> str:
        return f"https://www.zohoapis.{self.data_center}"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ZohoCredential":
        """Create a credential from a config mapping (snake or camel case keys)."""
        values = {_KEY_ALIASES.get(key, key): value for key, value in data.items()}

        missing = [key for key in ("client_id", "client_secret") if not values.get(key)]
        if missing:
            raise ConfigurationError(f"Missing required credential fields: {', '.join(missing)}")

        scopes = values.get("scopes") or DEFAULT_SCOPES
        if isinstance(scopes, str):
            scopes = [s.strip() for s in scopes.split(",") if s.strip()]

        return cls(
            client_id=values["client_id"],
            client_secret=values["client_secret"],
            refresh_token=values.get("refresh_token"),
            data_center=values.get("data_center") or DEFAULT_DATA_CENTER,
            scopes=tuple(scopes),
            redirect_uri=values.get("redirect_uri") or DEFAULT_REDIRECT_URI,
            organization_id=values.get("organization_id"),
        )


def load_config(config_path: str | None = None, profile: str | None = None) -> ZohoCredential:
    """Load a credential profile from a JSON file.

    The file is either a flat credential mapping or holds several named
    profiles::

        {"active_profile": "production",
         "profiles": {"production": {...}, "sandbox": {...}}}

    Args:
        config_path: Path to the JSON file. Defaults to ``$ZOHO_CONFIG_PATH``
            or ``config.json``.
        profile: Profile name. Defaults to the file's ``active_profile``.

    Returns:
        The selected credential.
    """
    if config_path is None:
        config_path = os.environ.get(CONFIG_PATH_ENV, DEFAULT_CONFIG_PATH)

    if not os.path.exists(config_path):
        raise ConfigurationError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        try:
            config = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in config file {config_path}: {e}") from e

    if not isinstance(config, dict):
        raise ConfigurationError(f"Config file {config_path} must contain a JSON object")

    if "profiles" not in config:
        if profile is not None:
            raise ConfigurationError(f"Config file {config_path} has no profiles, cannot select '{profile}'")
        return ZohoCredential.from_dict(config)

    name = profile or config.get("active_profile")
    if not name:
        raise ConfigurationError("No profile given and no active_profile set in config")

    profiles = config["profiles"]
    if name not in profiles:
        raise ConfigurationError(f"Profile '{name}' not found. Available: {', '.join(sorted(profiles))}")

    logger.debug("Using configuration profile %s", name)
    return ZohoCredential.from_dict(profiles[name])
