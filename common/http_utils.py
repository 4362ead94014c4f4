# common/http_utils.py
# -*- coding: utf-8 -*-
"""
HTTP fetch helpers used for release metadata, release listings, repository
signing keys and archive downloads.

All helpers raise ``requests.exceptions.RequestException`` (or ``OSError``
when writing to disk) so that callers can log the reason before trying a
fallback.
"""

import logging
from pathlib import Path
from typing import Any, Union

import requests

from stack_setup.config_models import HTTP_TIMEOUT_DEFAULT

module_logger = logging.getLogger(__name__)

USER_AGENT = "stack-setup/1.0"


def _get(url: str, timeout: int, stream: bool = False) -> requests.Response:
    response = requests.get(
        url,
        timeout=timeout,
        stream=stream,
        headers={"User-Agent": USER_AGENT},
    )
    response.raise_for_status()
    return response


def fetch_text(url: str, timeout: int = HTTP_TIMEOUT_DEFAULT) -> str:
    """Fetch ``url`` and return the decoded body."""
    module_logger.debug(f"Fetching {url}")
    return _get(url, timeout).text


def fetch_json(url: str, timeout: int = HTTP_TIMEOUT_DEFAULT) -> Any:
    """
    Fetch ``url`` and decode it as JSON.

    Raises:
        requests.exceptions.RequestException: On transport or HTTP errors,
            and on a body that is not valid JSON.
    """
    module_logger.debug(f"Fetching JSON from {url}")
    response = _get(url, timeout)
    try:
        return response.json()
    except ValueError as e:
        raise requests.exceptions.InvalidJSONError(
            f"Invalid JSON returned by {url}: {e}"
        ) from e


def download_file(
    url: str,
    download_to_path: Union[str, Path],
    timeout: int = HTTP_TIMEOUT_DEFAULT,
) -> Path:
    """
    Download ``url`` to ``download_to_path``, streaming to disk.

    A partially written file is removed when the transfer fails.

    Returns:
        The path of the downloaded file.
    """
    download_path = Path(download_to_path)
    module_logger.info(f"Downloading {url} to {download_path}")
    download_path.parent.mkdir(parents=True, exist_ok=True)

    try:
        with _get(url, timeout, stream=True) as response:
            with open(download_path, "wb") as f:
                for chunk in response.iter_content(chunk_size=8192):
                    if chunk:
                        f.write(chunk)
    except (requests.exceptions.RequestException, OSError):
        download_path.unlink(missing_ok=True)
        raise

    module_logger.info(f"Downloaded {url}")
    return download_path
