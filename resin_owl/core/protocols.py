"""Protocol definitions for printer-engine clients.

This module defines the contract every backend adapter implements, so that
presentation-layer providers never depend on a concrete engine. Variants are
selected at construction time (see :mod:`resin_owl.backends`).

Every operation is a network call: nothing is cached, nothing is retried and
concurrent calls are independent. Failures surface as
:class:`~resin_owl.errors.TransportFailure`,
:class:`~resin_owl.errors.UnexpectedResponse` or
:class:`~resin_owl.errors.Unsupported`.
"""

from __future__ import annotations

from typing import Any, AsyncIterator, Mapping, Optional, Protocol, runtime_checkable


@runtime_checkable
class BackendClient(Protocol):
    """Capability surface of a printer-engine client."""

    name: str

    # -- files -------------------------------------------------------------
    async def list_items(
        self,
        location: str,
        page_size: int,
        page_index: int,
        subdirectory: str = "",
    ) -> dict[str, Any]:
        """List files and directories under ``location`` one page at a time."""
        ...

    async def usb_available(self) -> bool:
        ...

    async def get_file_metadata(self, location: str, file_path: str) -> dict[str, Any]:
        ...

    async def get_file_thumbnail(
        self, location: str, file_path: str, size: str = "Small"
    ) -> bytes:
        """Return PNG bytes for the file preview at ``size`` ("Small"/"Large")."""
        ...

    async def delete_file(self, location: str, file_path: str) -> dict[str, Any]:
        ...

    async def get_plate_layer_image(self, plate_id: int, layer: int) -> bytes:
        ...

    # -- configuration -----------------------------------------------------
    async def get_config(self) -> dict[str, Any]:
        ...

    async def get_backend_version(self) -> str:
        ...

    # -- print lifecycle ---------------------------------------------------
    async def start_print(self, location: str, file_path: str) -> None:
        ...

    async def cancel_print(self) -> None:
        ...

    async def pause_print(self) -> None:
        ...

    async def resume_print(self) -> None:
        ...

    # -- status ------------------------------------------------------------
    async def get_status(self) -> dict[str, Any]:
        """Fetch one status snapshot in the ``/status`` shape."""
        ...

    def status_stream(
        self, interval: Optional[float] = None
    ) -> AsyncIterator[dict[str, Any]]:
        """Yield status snapshots in the order observed.

        The sequence is conceptually infinite; each call starts a new one.
        """
        ...

    async def get_notifications(self) -> list[dict[str, Any]]:
        ...

    async def disable_notification(self, timestamp: int) -> None:
        ...

    # -- motion and manual control (never retried) -------------------------
    async def move(self, height: float) -> dict[str, Any]:
        """Move the Z axis to an absolute ``height`` in millimetres."""
        ...

    async def move_delta(self, delta_mm: float) -> dict[str, Any]:
        """Move the Z axis by ``delta_mm`` (positive = up)."""
        ...

    async def can_move_to_top(self) -> bool:
        ...

    async def can_move_to_floor(self) -> bool:
        ...

    async def move_to_top(self) -> dict[str, Any]:
        ...

    async def move_to_floor(self) -> dict[str, Any]:
        ...

    async def manual_home(self) -> dict[str, Any]:
        ...

    async def manual_cure(self, cure: bool) -> dict[str, Any]:
        ...

    async def manual_command(self, command: str) -> dict[str, Any]:
        ...

    async def emergency_stop(self) -> dict[str, Any]:
        ...

    async def display_test(self, test: str) -> None:
        ...

    # -- maintenance and calibration ---------------------------------------
    async def list_profiles(self) -> list[dict[str, Any]]:
        ...

    async def create_profile(self, fields: Mapping[str, Any]) -> dict[str, Any]:
        ...

    async def edit_profile(
        self, profile_id: int, fields: Mapping[str, Any]
    ) -> dict[str, Any]:
        ...

    async def delete_profile(self, profile_id: int) -> dict[str, Any]:
        ...

    async def get_temperatures(self) -> dict[str, Optional[float]]:
        ...

    async def set_vat_temperature(self, celsius: float) -> dict[str, Any]:
        ...

    async def set_chamber_temperature(self, celsius: float) -> dict[str, Any]:
        ...

    async def get_analytics(self, n: int) -> list[dict[str, Any]]:
        """Return the last ``n`` analytics entries."""
        ...

    async def get_analytic_value(self, metric_id: int) -> Any:
        ...

    async def update_backend(self) -> None:
        """Ask the engine to install its pending software update."""
        ...

    # -- lifecycle ---------------------------------------------------------
    async def aclose(self) -> None:
        """Close any underlying resources."""
        ...


__all__ = ["BackendClient"]
