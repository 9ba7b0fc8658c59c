"""Async request/response wrapper around a shared ``requests`` session."""

import asyncio
import logging
from typing import Any, Dict, Optional

import requests

from geodata.core.errors import DecodingError, InvalidResponseError, InvalidURLError, RequestFailedError

logger = logging.getLogger(__name__)

_URL_ERRORS = (
    requests.exceptions.InvalidURL,
    requests.exceptions.MissingSchema,
    requests.exceptions.InvalidSchema,
)


class HTTPClient:
    """Runs blocking ``requests`` calls in worker threads so the event loop never blocks.

    ``display_url`` replaces ``url`` in error messages and logs; callers whose
    URL embeds a credential pass a redacted copy.
    """

    def __init__(self, session: Optional[requests.Session] = None, timeout: float = 10) -> None:
        self._session = session or requests.Session()
        self._timeout = timeout

    async def get_json(
        self,
        url: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
        display_url: Optional[str] = None,
    ) -> Any:
        return await asyncio.to_thread(
            self._send,
            "GET",
            url,
            timeout=timeout,
            display_url=display_url,
            params=params,
            headers=headers,
        )

    async def post_json(
        self,
        url: str,
        *,
        payload: Dict[str, Any],
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        return await asyncio.to_thread(
            self._send,
            "POST",
            url,
            timeout=timeout,
            json=payload,
            headers=headers,
        )

    def _send(
        self,
        method: str,
        url: str,
        *,
        timeout: Optional[float] = None,
        display_url: Optional[str] = None,
        **kwargs: Any,
    ) -> Any:
        shown = display_url or url
        timeout = self._timeout if timeout is None else timeout
        try:
            if method == "GET":
                response = self._session.get(url, timeout=timeout, **kwargs)
            else:
                response = self._session.post(url, timeout=timeout, **kwargs)
        except _URL_ERRORS as exc:
            raise InvalidURLError(f"invalid URL {shown!r}") from exc
        except requests.RequestException as exc:
            raise RequestFailedError(f"{method} {shown} failed: {type(exc).__name__}") from exc

        if not 200 <= response.status_code < 300:
            logger.debug("%s %s returned status=%s", method, shown, response.status_code)
            raise InvalidResponseError(response.status_code, shown, getattr(response, "text", None))

        try:
            return response.json()
        except ValueError as exc:
            raise DecodingError(f"{method} {shown} returned a non-JSON body") from exc

    def close(self) -> None:
        self._session.close()
