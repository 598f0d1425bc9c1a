"""
Configuration resolution for the registration service.

Settings are resolved once per process through get_settings(). The backing
store is selected at startup by CONFIG_BACKEND:

- env: process environment plus a local .env file
- runtime_config: a platform-managed JSON document shaped like
  {"zoom": {"client_id": "..."}, "mailchimp": {"api_key": "..."}}

Callers only ever see the Settings object and never need to know which store
produced it.
"""

import json
import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Type

from pydantic.fields import FieldInfo
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

logger = logging.getLogger(__name__)

CONFIG_BACKEND_ENV = "env"
CONFIG_BACKEND_RUNTIME = "runtime_config"

VARIANT_BASE = "base"
VARIANT_EXTENDED = "extended"

SYNC_MODE_AWAIT = "await"
SYNC_MODE_BACKGROUND = "background"


def resolve_config_backend() -> str:
    """Pick the configuration store for this process."""
    backend = os.environ.get("CONFIG_BACKEND")
    if backend:
        return backend.strip().lower()
    # Hosted function platforms set one of these; local runs do not.
    if os.environ.get("FUNCTION_NAME") or os.environ.get("K_SERVICE"):
        return CONFIG_BACKEND_RUNTIME
    return CONFIG_BACKEND_ENV


def load_runtime_config() -> Dict[str, Any]:
    """Read the platform runtime config from CLOUD_RUNTIME_CONFIG or a file."""
    raw = os.environ.get("CLOUD_RUNTIME_CONFIG")
    if not raw:
        path = Path(os.environ.get("RUNTIME_CONFIG_PATH", ".runtimeconfig.json"))
        if not path.is_file():
            logger.warning(f"Runtime config not found at {path}")
            return {}
        raw = path.read_text(encoding="utf-8")

    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError("Runtime config must be a JSON object of sections")
    return data


class RuntimeConfigSettingsSource(PydanticBaseSettingsSource):
    """
    Settings source backed by a nested runtime config document.

    A field named ``zoom_client_id`` is looked up as ``zoom.client_id``:
    the section is everything before the first underscore.
    """

    def __init__(self, settings_cls: Type[BaseSettings], document: Optional[Dict[str, Any]] = None):
        super().__init__(settings_cls)
        self.document = load_runtime_config() if document is None else document

    def get_field_value(self, field: FieldInfo, field_name: str) -> Tuple[Any, str, bool]:
        section, _, key = field_name.partition("_")
        values = self.document.get(section)
        if not isinstance(values, dict) or not key:
            return None, field_name, False
        return values.get(key), field_name, False

    def __call__(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        for field_name, field in self.settings_cls.model_fields.items():
            value, key, _ = self.get_field_value(field, field_name)
            if value is not None:
                data[key] = value
        return data


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Zoom (webinar provider)
    zoom_account_id: Optional[str] = None
    zoom_client_id: Optional[str] = None
    zoom_client_secret: Optional[str] = None
    zoom_oauth_url: str = "https://zoom.us/oauth/token"
    zoom_api_base_url: str = "https://api.zoom.us/v2"

    # Mailchimp primary audience
    mailchimp_api_key: Optional[str] = None
    mailchimp_server_prefix: Optional[str] = None
    mailchimp_list_id: Optional[str] = None

    # Mailchimp secondary audience (extended variant only)
    mailchimp_secondary_api_key: Optional[str] = None
    mailchimp_secondary_server_prefix: Optional[str] = None
    mailchimp_secondary_list_id: Optional[str] = None

    # Loaded for parity with the deployed config; nothing calls HubSpot.
    hubspot_api_token: Optional[str] = None

    # Behaviour
    registration_variant: str = VARIANT_BASE
    list_sync_mode: str = SYNC_MODE_AWAIT
    outbound_timeout_seconds: float = 30.0

    # CORS settings
    cors_enabled: bool = True
    cors_allowed_origins: List[str] = ["*"]

    log_level: str = "INFO"

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        if resolve_config_backend() == CONFIG_BACKEND_RUNTIME:
            return (init_settings, RuntimeConfigSettingsSource(settings_cls))
        return (init_settings, env_settings, dotenv_settings, file_secret_settings)

    @property
    def is_extended(self) -> bool:
        return self.registration_variant.lower() == VARIANT_EXTENDED

    @property
    def is_background_sync(self) -> bool:
        return self.list_sync_mode.lower() == SYNC_MODE_BACKGROUND

    @property
    def effective_secondary_api_key(self) -> Optional[str]:
        return self.mailchimp_secondary_api_key or self.mailchimp_api_key

    @property
    def effective_secondary_server_prefix(self) -> Optional[str]:
        return self.mailchimp_secondary_server_prefix or self.mailchimp_server_prefix


@lru_cache
def get_settings() -> Settings:
    return Settings()
