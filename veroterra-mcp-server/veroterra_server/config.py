"""Configuration loaded from environment variables."""

import os
from typing import Optional

from pydantic import BaseModel, Field

from .catalog_source import DEFAULT_CATALOG_URL
from .numeric import sanitize_number

DEFAULT_SHIPPING = 117.0


class Settings(BaseModel):
    """Server settings."""

    catalog_url: str = Field(default=DEFAULT_CATALOG_URL, description="Published catalog CSV")
    store_file: Optional[str] = Field(None, description="Persisted state file (default ~/.veroterra_store.json)")
    export_dir: str = Field(default=".", description="Directory receiving exported files")
    shipping: float = Field(default=DEFAULT_SHIPPING, description="Flat shipping charge")
    auto_refresh: bool = Field(default=True, description="Fetch the remote catalog at startup")


def _get_env(*keys: str, default: Optional[str] = None) -> Optional[str]:
    for key in keys:
        value = os.environ.get(key)
        if value is not None and value.strip() != "":
            return value.strip()
    return default


def _get_bool(*keys: str, default: bool) -> bool:
    value = _get_env(*keys)
    if value is None:
        return default
    return value.lower() not in ("0", "false", "no", "off")


def load_settings() -> Settings:
    """Read settings from the environment."""
    shipping = _get_env("VEROTERRA_SHIPPING")
    return Settings(
        catalog_url=_get_env("VEROTERRA_CATALOG_URL", default=DEFAULT_CATALOG_URL),
        store_file=_get_env("VEROTERRA_STORE_FILE"),
        export_dir=_get_env("VEROTERRA_EXPORT_DIR", default="."),
        shipping=DEFAULT_SHIPPING if shipping is None else sanitize_number(shipping),
        auto_refresh=_get_bool("VEROTERRA_AUTO_REFRESH", default=True),
    )
