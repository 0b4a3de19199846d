"""Shared aiohttp transport for engine REST clients.

The transport owns the base URL, the per-request timeout and the mapping of
aiohttp failures onto :mod:`resin_owl.errors`. It never retries.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator, Mapping, Optional

import aiohttp

from ..errors import TransportFailure, UnexpectedResponse

LOGGER = logging.getLogger(__name__)

_DETAIL_LIMIT = 200


@dataclass(slots=True, frozen=True)
class HttpResponse:
    status: int
    body: bytes
    content_type: str

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def json(self) -> Any:
        """Decode the body as JSON; an empty body decodes to ``None``."""
        if not self.body.strip():
            return None
        try:
            return json.loads(self.body)
        except ValueError as exc:
            raise UnexpectedResponse(
                f"response is not valid JSON: {exc}",
                status=self.status,
                detail=self.text[:_DETAIL_LIMIT],
            ) from exc


def validate_base_url(url: str) -> str:
    """Return ``url`` without trailing slashes; reject non-HTTP schemes."""
    stripped = url.strip()
    if not stripped.startswith(("http://", "https://")):
        raise ValueError("base url must start with either http:// or https://")
    return stripped.rstrip("/")


class HttpTransport:
    """Non-blocking request helper bound to one engine base URL."""

    def __init__(
        self,
        base_url: str,
        *,
        label: str,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: float = 5.0,
    ) -> None:
        self.base_url = validate_base_url(base_url)
        self.label = label
        self.timeout = timeout
        self._session: Optional[aiohttp.ClientSession] = session
        self._owns_session = session is None

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------
    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Mapping[str, str]] = None,
        json_body: Any = None,
        data: Any = None,
        timeout: Optional[float] = None,
    ) -> HttpResponse:
        """Perform one request and return the buffered response.

        Raises:
            TransportFailure: The engine could not be reached in time.
            UnexpectedResponse: The engine answered with a non-2xx status.
        """

        session = await self._ensure_session()
        url = self.url(path)
        limit = timeout if timeout is not None else self.timeout

        try:
            async with asyncio.timeout(limit):
                async with session.request(
                    method, url, params=params, json=json_body, data=data
                ) as response:
                    body = await response.read()
                    result = HttpResponse(
                        status=response.status,
                        body=body,
                        content_type=response.content_type or "",
                    )
        except asyncio.TimeoutError as exc:
            LOGGER.warning(
                "%s %s %s timed out after %.1fs", self.label, method, url, limit
            )
            raise TransportFailure(
                f"{self.label} {method} {url} timed out after {limit:.1f}s"
            ) from exc
        except aiohttp.ClientError as exc:
            LOGGER.debug("%s %s %s failed: %s", self.label, method, url, exc)
            raise TransportFailure(f"{self.label} unreachable: {exc}") from exc

        if not 200 <= result.status < 300:
            detail = result.text.strip()[:_DETAIL_LIMIT]
            LOGGER.warning(
                "%s %s %s failed with status %d: %s",
                self.label,
                method,
                url,
                result.status,
                detail,
            )
            raise UnexpectedResponse(
                f"{self.label} {method} {path} failed with status {result.status}",
                status=result.status,
                detail=detail,
            )
        return result

    async def get(
        self, path: str, params: Optional[Mapping[str, str]] = None
    ) -> HttpResponse:
        return await self.request("GET", path, params=params)

    async def post(
        self,
        path: str,
        params: Optional[Mapping[str, str]] = None,
        *,
        json_body: Any = None,
        data: Any = None,
    ) -> HttpResponse:
        return await self.request(
            "POST", path, params=params, json_body=json_body, data=data
        )

    async def delete(
        self, path: str, params: Optional[Mapping[str, str]] = None
    ) -> HttpResponse:
        return await self.request("DELETE", path, params=params)

    async def get_json_object(
        self, path: str, params: Optional[Mapping[str, str]] = None
    ) -> dict[str, Any]:
        response = await self.get(path, params)
        return expect_object(response.json(), f"{self.label} {path}")

    async def stream_lines(self, path: str) -> AsyncIterator[str]:
        """Yield decoded lines from a long-lived GET response.

        The connect phase honours the transport timeout; reading does not, so
        the stream can stay open indefinitely.
        """

        session = await self._ensure_session()
        url = self.url(path)
        try:
            async with asyncio.timeout(self.timeout):
                response = await session.get(url)
        except asyncio.TimeoutError as exc:
            raise TransportFailure(
                f"{self.label} GET {url} timed out after {self.timeout:.1f}s"
            ) from exc
        except aiohttp.ClientError as exc:
            raise TransportFailure(f"{self.label} unreachable: {exc}") from exc

        async with response:
            if not 200 <= response.status < 300:
                detail = (await response.text()).strip()[:_DETAIL_LIMIT]
                raise UnexpectedResponse(
                    f"{self.label} GET {path} failed with status {response.status}",
                    status=response.status,
                    detail=detail,
                )
            try:
                async for raw_line in response.content:
                    yield raw_line.decode("utf-8", errors="replace").rstrip("\r\n")
            except aiohttp.ClientError as exc:
                raise TransportFailure(
                    f"{self.label} stream interrupted: {exc}"
                ) from exc

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def url(self, path: str) -> str:
        if not path.startswith("/"):
            path = "/" + path
        return f"{self.base_url}{path}"

    async def aclose(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            timeout = aiohttp.ClientTimeout(total=None)
            self._session = aiohttp.ClientSession(timeout=timeout)
            self._owns_session = True
        return self._session


def expect_object(payload: Any, context: str) -> dict[str, Any]:
    if not isinstance(payload, dict):
        raise UnexpectedResponse(
            f"{context} returned {type(payload).__name__}, expected an object"
        )
    return payload


def expect_list(payload: Any, context: str) -> list[Any]:
    if not isinstance(payload, list):
        raise UnexpectedResponse(
            f"{context} returned {type(payload).__name__}, expected a list"
        )
    return payload


__all__ = [
    "HttpResponse",
    "HttpTransport",
    "expect_list",
    "expect_object",
    "validate_base_url",
]
