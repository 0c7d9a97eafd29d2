"""Fetch template files published alongside the kickoff template."""

from __future__ import annotations

import logging
import urllib.error
import urllib.request

from kickoff.errors import KickoffError

LOGGER = logging.getLogger(__name__)


class RemoteFetchError(KickoffError):
    """Raised when a remote template file cannot be downloaded."""


def fetch_text(url: str, *, timeout: float = 30.0) -> str:
    """Return the body at ``url`` decoded as UTF-8.

    ``file://`` URLs are accepted, which lets a local checkout of the
    template repository stand in for the published copy.
    """

    request = urllib.request.Request(url, headers={"User-Agent": "rails-kickoff/0.1"})
    LOGGER.debug("Fetching %s", url)
    try:
        with urllib.request.urlopen(request, timeout=timeout) as response:
            raw = response.read()
            status = getattr(response, "status", None) or 200
    except TimeoutError as error:  # pragma: no cover - network-dependent
        raise RemoteFetchError(f"Timed out fetching {url}", details={"url": url}) from error
    except urllib.error.HTTPError as error:  # pragma: no cover - network-dependent
        raise RemoteFetchError(
            f"HTTP {error.code} fetching {url}",
            details={"url": url, "status": error.code},
        ) from error
    except urllib.error.URLError as error:
        raise RemoteFetchError(f"Failed to fetch {url}: {error.reason}", details={"url": url}) from error

    if status >= 400:
        raise RemoteFetchError(f"Unexpected HTTP status {status} for {url}", details={"url": url})
    return raw.decode("utf-8")


__all__ = ["RemoteFetchError", "fetch_text"]
