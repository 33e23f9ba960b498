"""Shared HTTP helpers used by the repository adapters.

Encapsulates common request/timeout error handling so adapters avoid
duplicating try/except blocks. Network errors are raised as DownloadFailure
so the installer can record them against a single package and move on.
"""
from __future__ import annotations

import hashlib
import json
import logging
import os
from typing import Any, Dict, Optional, Tuple

import requests

from constants import Constants
from common.errors import DownloadFailure
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer

logger = logging.getLogger(__name__)


def safe_get(url: str, *, context: str, **kwargs: Any) -> requests.Response:
    """Perform a GET request with consistent error handling and DEBUG traces.

    Args:
        url: Target URL.
        context: Human-readable source tag for logs (e.g., "npm", "github").
        **kwargs: Passed through to requests.get.

    Returns:
        requests.Response: The HTTP response object.

    Raises:
        DownloadFailure: On timeout or connection errors.
    """
    safe_target = safe_url(url)
    with Timer() as t:
        if is_debug_enabled(logger):
            logger.debug(
                "HTTP request",
                extra=extra_context(
                    event="http_request",
                    component="http_client",
                    action="GET",
                    target=safe_target,
                    context=context
                )
            )
        try:
            res = requests.get(url, timeout=Constants.REQUEST_TIMEOUT, **kwargs)
        except requests.Timeout as exc:
            logger.error(
                "%s request timed out after %s seconds",
                context,
                Constants.REQUEST_TIMEOUT,
            )
            raise DownloadFailure(
                f"{context} request timed out: {safe_target}", url=url
            ) from exc
        except requests.RequestException as exc:  # includes ConnectionError
            logger.error("%s connection error: %s", context, exc)
            raise DownloadFailure(f"{context} connection error: {exc}", url=url) from exc

        if is_debug_enabled(logger):
            logger.debug(
                "HTTP response",
                extra=extra_context(
                    event="http_response",
                    component="http_client",
                    action="GET",
                    status_code=res.status_code,
                    duration_ms=t.duration_ms(),
                    target=safe_target,
                    context=context
                )
            )
        return res


def get_json(
    url: str,
    *,
    context: str = "http",
    headers: Optional[Dict[str, str]] = None,
    **kwargs: Any
) -> Tuple[int, Dict[str, str], Optional[Any]]:
    """Perform GET request and parse JSON response.

    Args:
        url: Target URL
        context: Source tag for logs
        headers: Optional request headers
        **kwargs: Additional requests.get parameters

    Returns:
        Tuple of (status_code, headers_dict, parsed_json_or_none)
    """
    res = safe_get(url, context=context, headers=headers, **kwargs)
    if 200 <= res.status_code < 300 and res.text:
        try:
            return res.status_code, dict(res.headers), json.loads(res.text)
        except json.JSONDecodeError:
            logger.warning("Couldn't decode JSON from %s", safe_url(url))
            return res.status_code, dict(res.headers), None
    return res.status_code, dict(res.headers), None


def fetch_json(url: str, *, context: str, headers: Optional[Dict[str, str]] = None) -> Any:
    """GET a JSON document, raising DownloadFailure unless a 2xx JSON body comes back."""
    status, _, data = get_json(url, context=context, headers=headers)
    if data is None:
        raise DownloadFailure(
            f"{context} request {safe_url(url)} failed with status {status}", url=url
        )
    return data


def download_file(
    url: str,
    target_file: str,
    *,
    context: str,
    headers: Optional[Dict[str, str]] = None,
    shasum: Optional[str] = None,
) -> str:
    """Stream ``url`` into ``target_file`` and verify the sha1 digest when given.

    Returns:
        The path of the written file.

    Raises:
        DownloadFailure: On network errors, non-2xx status or digest mismatch.
    """
    res = safe_get(url, context=context, headers=headers, stream=True)
    if not 200 <= res.status_code < 300:
        raise DownloadFailure(
            f"download {safe_url(url)} failed with status {res.status_code}", url=url
        )

    os.makedirs(os.path.dirname(target_file), exist_ok=True)
    digest = hashlib.sha1()
    try:
        with open(target_file, "wb") as fh:
            for chunk in res.iter_content(chunk_size=Constants.DOWNLOAD_CHUNK_SIZE):
                if chunk:
                    fh.write(chunk)
                    digest.update(chunk)
    except (OSError, requests.RequestException) as exc:
        raise DownloadFailure(f"download {safe_url(url)} interrupted: {exc}", url=url) from exc

    if shasum:
        actual = digest.hexdigest().lower()
        if actual != shasum.strip().lower():
            os.remove(target_file)
            raise DownloadFailure(
                f"[shasum]expect {shasum}, actual {actual}", url=url
            )
    return target_file
