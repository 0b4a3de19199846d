"""Backend selection for the supported printer engines."""

from .context import BackendContext, create_backend_client

__all__ = ["BackendContext", "create_backend_client"]
