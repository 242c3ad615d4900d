"""
Resolution request construction.

The resolver is queried with a single GET carrying the shared secret and a
short description of the device:

    p            shared secret
    os           platform name and version
    lng          two-letter lowercase language code
    devicemodel  hardware model identifier
    country      region code (only when known)
"""

from __future__ import annotations

import locale
import logging
import os
import platform
from dataclasses import dataclass
from typing import List, Optional, Tuple

import httpx

from atelier.shared.core.configuration import AccessGateConfig, DeviceConfig

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE = "en"


class RequestConstructionError(ValueError):
    """The configured endpoint cannot be turned into a request URL."""


@dataclass(frozen=True)
class DeviceProfile:
    os_description: str
    locale: str
    device_model: str
    country: Optional[str] = None


def _system_locale_code() -> Optional[str]:
    try:
        code = locale.getlocale()[0]
    except ValueError:
        code = None
    return code or os.getenv("LC_ALL") or os.getenv("LANG")


def normalize_locale(code: Optional[str]) -> str:
    """Reduce ``en-US`` / ``en_US.UTF-8`` style codes to ``en``."""
    if not code:
        return DEFAULT_LANGUAGE
    language = code.split(".")[0].replace("_", "-").split("-")[0].strip().lower()
    if len(language) != 2 or not language.isalpha():
        return DEFAULT_LANGUAGE
    return language


def region_from_locale(code: Optional[str]) -> Optional[str]:
    """Region part of a locale code (``en_US.UTF-8`` → ``US``), if any."""
    if not code:
        return None
    parts = code.split(".")[0].replace("_", "-").split("-")
    if len(parts) < 2:
        return None
    region = parts[-1].strip()
    if len(region) == 2 and region.isalpha():
        return region.upper()
    return None


def detect_device_profile(overrides: Optional[DeviceConfig] = None) -> DeviceProfile:
    """Describe the host, letting configured values win over detection."""
    overrides = overrides or DeviceConfig()
    system_locale = _system_locale_code()

    os_description = overrides.os_description or f"{platform.system()} {platform.release()}".strip()
    device_model = overrides.device_model or platform.machine() or "unknown"
    language = normalize_locale(overrides.locale or system_locale)
    country = overrides.country or region_from_locale(overrides.locale or system_locale)

    return DeviceProfile(
        os_description=os_description,
        locale=language,
        device_model=device_model,
        country=country,
    )


@dataclass(frozen=True)
class ResolutionRequest:
    endpoint: str
    secret: str
    os_description: str
    locale: str
    device_model: str
    country: Optional[str] = None

    @classmethod
    def from_config(cls, config: AccessGateConfig, device: DeviceProfile) -> "ResolutionRequest":
        return cls(
            endpoint=config.host_endpoint,
            secret=config.auth_secret,
            os_description=device.os_description,
            locale=device.locale,
            device_model=device.device_model,
            country=device.country,
        )

    def query_params(self) -> List[Tuple[str, str]]:
        params = [
            ("p", self.secret),
            ("os", self.os_description),
            ("lng", self.locale),
            ("devicemodel", self.device_model),
        ]
        if self.country:
            params.append(("country", self.country))
        return params

    def to_url(self) -> httpx.URL:
        """Build the GET URL; any query already on the endpoint is replaced.

        Raises:
            RequestConstructionError: If the endpoint is not an absolute http(s) URL
        """
        try:
            base = httpx.URL(self.endpoint)
        except (httpx.InvalidURL, UnicodeError, TypeError) as e:
            raise RequestConstructionError(f"Invalid resolver endpoint: {e}") from e

        if base.scheme not in ("http", "https") or not base.host:
            raise RequestConstructionError(
                f"Resolver endpoint must be an absolute http(s) URL, got {self.endpoint!r}"
            )

        return base.copy_with(params=httpx.QueryParams(self.query_params()))
