"""Minimal HTTP helpers built on :mod:`urllib.request`."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional
import json
import shutil
import urllib.error
import urllib.request

USER_AGENT = "scaffolder"
DEFAULT_TIMEOUT = 30.0


class HttpError(RuntimeError):
    """Raised for any transport or decoding failure."""

    def __init__(self, url: str, reason: str, *, status: int | None = None):
        super().__init__(f"{reason} ({url})")
        self.url = url
        self.status = status


def _build_request(url: str, headers: Optional[Dict[str, str]]) -> urllib.request.Request:
    merged = dict(headers or {})
    if "User-Agent" not in merged:
        merged["User-Agent"] = USER_AGENT
    return urllib.request.Request(url, headers=merged, method="GET")


def get_json(
    url: str,
    *,
    headers: Optional[Dict[str, str]] = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> Any:
    request_headers = dict(headers or {})
    request_headers.setdefault("Accept", "application/json")
    req = _build_request(url, request_headers)
    try:
        with urllib.request.urlopen(req, timeout=timeout) as response:
            payload = response.read()
    except urllib.error.HTTPError as exc:
        raise HttpError(url, f"HTTP {exc.code}: {exc.reason}", status=exc.code) from exc
    except (urllib.error.URLError, OSError) as exc:
        raise HttpError(url, f"request failed: {exc}") from exc
    try:
        return json.loads(payload.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise HttpError(url, f"invalid JSON response: {exc}") from exc


def download(
    url: str,
    destination: Path,
    *,
    headers: Optional[Dict[str, str]] = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> Path:
    """Stream ``url`` into ``destination`` and return it.

    Errors opening ``destination`` itself propagate as :class:`OSError`.
    """

    req = _build_request(url, headers)
    with destination.open("wb") as handle:
        try:
            with urllib.request.urlopen(req, timeout=timeout) as response:
                shutil.copyfileobj(response, handle)
        except urllib.error.HTTPError as exc:
            raise HttpError(url, f"HTTP {exc.code}: {exc.reason}", status=exc.code) from exc
        except (urllib.error.URLError, OSError) as exc:
            raise HttpError(url, f"download failed: {exc}") from exc
    return destination


__all__ = ["DEFAULT_TIMEOUT", "HttpError", "download", "get_json"]
