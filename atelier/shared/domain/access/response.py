"""Parsing of resolver responses of the form ``<token>#<destination>``."""

from __future__ import annotations

import logging
from typing import NamedTuple, Optional

import httpx

logger = logging.getLogger(__name__)

FIELD_SEPARATOR = "#"


class ResolutionResult(NamedTuple):
    token: str
    destination: str


def parse_destination(text: str) -> Optional[str]:
    """Return ``text`` if it is an absolute URL with a scheme and host."""
    if not text or text != text.strip():
        return None
    try:
        url = httpx.URL(text)
    except (httpx.InvalidURL, UnicodeError):
        return None
    if not url.scheme or not url.host:
        return None
    return text


def parse_resolution_response(content: str, expected_token: str) -> Optional[ResolutionResult]:
    """Validate a resolver body.

    The trimmed body must split on ``#`` into exactly two fields, the first
    equal to ``expected_token`` and the second a valid destination URL.
    Returns None for anything else.
    """
    parts = content.strip().split(FIELD_SEPARATOR)
    if len(parts) != 2:
        logger.warning(f"Resolver response has {len(parts)} field(s), expected 2")
        return None

    token, raw_destination = parts
    if not token or token != expected_token:
        logger.warning("Resolver response token does not match")
        return None

    destination = parse_destination(raw_destination)
    if destination is None:
        logger.warning("Resolver response destination is not a valid URL")
        return None

    return ResolutionResult(token=token, destination=destination)
