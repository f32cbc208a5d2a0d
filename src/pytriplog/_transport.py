"""HTTP transport shared by the mirror reader, the relay and the suggester."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from pytriplog._redact import redact_for_log
from pytriplog.exceptions import TripLogTransportError

_logger = logging.getLogger(__name__)

USER_AGENT = "pytriplog/1 (+aiohttp)"


class Transport(Protocol):
    """Structural transport interface used by the adapters.

    Having a protocol here makes it easy to pass test doubles while
    keeping the production implementation (`HttpTransport`) concrete.
    """

    async def get_text(self, url: str) -> str:
        ...

    async def post_form(self, url: str, fields: Mapping[str, str]) -> int:
        ...

    async def post_json(
        self,
        url: str,
        payload: Mapping[str, Any],
        *,
        headers: Mapping[str, str] | None = None,
    ) -> dict[str, Any]:
        ...


class HttpTransport:
    """Thin aiohttp wrapper mapping client errors to :class:`TripLogTransportError`."""

    def __init__(self, http_session: aiohttp.ClientSession, *, timeout: float = 10.0) -> None:
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    async def get_text(self, url: str) -> str:
        _logger.debug("GET %s", url)
        try:
            async with self._http.get(url, headers={"user-agent": USER_AGENT}, timeout=self._timeout) as resp:
                text = await resp.text()
                if resp.status != 200:
                    raise TripLogTransportError(
                        f"HTTP {resp.status} from {url}: {text[:200]}",
                        status_code=resp.status,
                        url=url,
                    )
        except TripLogTransportError:
            raise
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise TripLogTransportError(f"Request to {url} failed: {exc}", url=url) from exc
        except UnicodeDecodeError as exc:
            raise TripLogTransportError(f"Undecodable response from {url}: {exc}", url=url) from exc
        return text

    async def post_form(self, url: str, fields: Mapping[str, str]) -> int:
        """POST urlencoded form fields and return the status code.

        The body is not read; form endpoints answer with HTML nobody needs.
        """
        _logger.debug("POST %s %s", url, redact_for_log(fields))
        data = aiohttp.FormData()
        for key, value in fields.items():
            data.add_field(key, value)
        try:
            async with self._http.post(
                url,
                data=data,
                headers={"user-agent": USER_AGENT},
                timeout=self._timeout,
            ) as resp:
                return resp.status
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise TripLogTransportError(f"Request to {url} failed: {exc}", url=url) from exc

    async def post_json(
        self,
        url: str,
        payload: Mapping[str, Any],
        *,
        headers: Mapping[str, str] | None = None,
    ) -> dict[str, Any]:
        _logger.debug("POST %s %s", url, redact_for_log(payload))
        merged_headers = {"user-agent": USER_AGENT, "content-type": "application/json"}
        if headers:
            merged_headers.update(headers)
        try:
            async with self._http.post(url, json=dict(payload), headers=merged_headers, timeout=self._timeout) as resp:
                if resp.status != 200:
                    text = await resp.text()
                    raise TripLogTransportError(
                        f"HTTP {resp.status} from {url}: {text[:200]}",
                        status_code=resp.status,
                        url=url,
                    )
                body = await resp.json(content_type=None)
        except TripLogTransportError:
            raise
        except (aiohttp.ClientError, TimeoutError, ValueError) as exc:
            raise TripLogTransportError(f"Request to {url} failed: {exc}", url=url) from exc

        if not isinstance(body, dict):
            raise TripLogTransportError(f"Unexpected JSON body from {url}", url=url)
        return body
