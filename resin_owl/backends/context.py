"""Backend selection and the per-application backend handle.

The concrete client is chosen once, when the application starts, from the
``[backend] kind`` setting. Everything else receives the resulting
:class:`BackendContext` explicitly.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import aiohttp

from .. import constants
from ..adapters.nanodlp import NanoDlpClient
from ..adapters.odyssey import OdysseyClient
from ..config import ResinOwlConfig
from ..core.protocols import BackendClient
from ..core.status import StatusCanonicalizer

LOGGER = logging.getLogger(__name__)


def create_backend_client(
    config: ResinOwlConfig,
    *,
    session: Optional[aiohttp.ClientSession] = None,
    canonicalizer: Optional[StatusCanonicalizer] = None,
) -> BackendClient:
    """Build the client variant named by ``config.backend.kind``.

    Raises:
        ValueError: The configured kind is not a supported backend.
    """

    backend = config.backend
    kind = backend.kind.strip().lower()

    if kind == constants.BACKEND_ODYSSEY:
        client: BackendClient = OdysseyClient(
            backend.url,
            session=session,
            timeout=backend.request_timeout_seconds,
        )
    elif kind == constants.BACKEND_NANODLP:
        client = NanoDlpClient(
            backend.url,
            session=session,
            timeout=backend.request_timeout_seconds,
            canonicalizer=canonicalizer,
            poll_interval=config.status.poll_interval_seconds,
        )
    else:
        raise ValueError(
            f"Unsupported backend kind {backend.kind!r}; expected one of "
            + ", ".join(constants.SUPPORTED_BACKENDS)
        )

    LOGGER.info("Using %s backend at %s", kind, backend.url)
    return client


@dataclass(slots=True)
class BackendContext:
    """Configuration, client and canonicalizer for one running application."""

    config: ResinOwlConfig
    client: BackendClient
    canonicalizer: StatusCanonicalizer

    @classmethod
    def from_config(
        cls,
        config: ResinOwlConfig,
        *,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> "BackendContext":
        canonicalizer = StatusCanonicalizer()
        client = create_backend_client(
            config, session=session, canonicalizer=canonicalizer
        )
        return cls(config=config, client=client, canonicalizer=canonicalizer)

    @property
    def kind(self) -> str:
        return self.config.backend.kind

    async def aclose(self) -> None:
        await self.client.aclose()

    async def __aenter__(self) -> "BackendContext":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


__all__ = ["BackendContext", "create_backend_client"]
