"""Read input text from a local path or an http(s) URL."""

from __future__ import annotations

import logging
from pathlib import Path

import httpx

from maxpower.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

URL_PREFIXES = ("http://", "https://")


def is_url(location: str) -> bool:
    return location.lower().startswith(URL_PREFIXES)


def read_text(
    location: str | Path,
    client: httpx.Client | None = None,
    timeout: float = 30.0,
) -> str:
    """Return the text content at ``location``.

    Args:
        location: filesystem path or http(s) URL
        client: optional httpx client to reuse for URL locations
        timeout: request timeout in seconds when no client is supplied
    """
    location = str(location)
    if is_url(location):
        logger.debug("Fetching %s", location)
        try:
            if client is not None:
                response = client.get(location)
            else:
                with httpx.Client(timeout=timeout, follow_redirects=True) as own_client:
                    response = own_client.get(location)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise ConfigurationError(f"Could not read {location}: {exc}") from exc
        return response.text

    path = Path(location)
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"Could not read file {location}: {exc}") from exc
