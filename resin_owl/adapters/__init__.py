"""Backend client adapters."""

from .fake import FakeBackendClient
from .http import HttpResponse, HttpTransport
from .nanodlp import NanoDlpClient
from .odyssey import OdysseyClient

__all__ = [
    "FakeBackendClient",
    "HttpResponse",
    "HttpTransport",
    "NanoDlpClient",
    "OdysseyClient",
]
