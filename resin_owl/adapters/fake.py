"""In-memory backend used by tests and offline development.

``FakeBackendClient`` satisfies :class:`~resin_owl.core.protocols.BackendClient`
without any network access. Status snapshots are either scripted (returned in
order, the last one repeating) or derived from a small simulated job that
reacts to print-lifecycle calls. Every call is recorded in ``calls``.
"""

from __future__ import annotations

import asyncio
from typing import Any, AsyncIterator, Iterable, Mapping, Optional

from ..core.models import ManualResult
from ..errors import BackendError, UnexpectedResponse, Unsupported
from .thumbnails import generate_placeholder, thumbnail_dimensions


class FakeBackendClient:
    """Scriptable in-memory BackendClient."""

    name = "fake"

    def __init__(
        self,
        *,
        statuses: Optional[Iterable[Mapping[str, Any]]] = None,
        files: Optional[Iterable[Mapping[str, Any]]] = None,
        unsupported: Iterable[str] = (),
        layer_count: int = 100,
        z: float = 0.0,
    ) -> None:
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.failures: dict[str, BackendError] = {}
        self.unsupported = set(unsupported)
        self.closed = False

        self._scripted = [dict(status) for status in statuses or ()]
        self._files = [dict(entry) for entry in files or ()]
        self._notifications: list[dict[str, Any]] = []
        self._profiles: dict[int, dict[str, Any]] = {}
        self._temperatures: dict[str, Optional[float]] = {"vat": None, "chamber": None}

        self.z = z
        self.layer_count = layer_count
        self.job: Optional[str] = None
        self.layer: Optional[int] = None
        self.paused = False
        self.canceled = False

    # ------------------------------------------------------------------
    # Test helpers
    # ------------------------------------------------------------------
    def fail(self, operation: str, error: BackendError) -> None:
        """Make every later call to ``operation`` raise ``error``."""
        self.failures[operation] = error

    def add_notification(self, payload: Mapping[str, Any]) -> None:
        self._notifications.append(dict(payload))

    def called(self, operation: str) -> list[tuple[Any, ...]]:
        return [args for name, args in self.calls if name == operation]

    def _record(self, operation: str, *args: Any) -> None:
        self.calls.append((operation, args))
        if operation in self.unsupported:
            raise Unsupported(self.name, operation)
        error = self.failures.get(operation)
        if error is not None:
            raise error

    def _find_file(self, file_path: str) -> Optional[dict[str, Any]]:
        for entry in self._files:
            file_data = entry.get("file_data") or {}
            if file_path in (file_data.get("path"), file_data.get("name")):
                return entry
        return None

    def _simulated_status(self) -> dict[str, Any]:
        if self.canceled or self.job is None:
            status, layer = "Idle", None
        else:
            status, layer = "Printing", self.layer
        print_data = None
        if self.job is not None:
            print_data = {
                "layer_count": self.layer_count,
                "used_material": 0.0,
                "print_time": 0,
                "file_data": {"name": self.job, "path": self.job},
            }
        return {
            "status": status,
            "paused": self.paused,
            "layer": layer,
            "print_data": print_data,
            "physical_state": {"z": self.z, "curing": False},
            "cancel_latched": self.canceled,
            "pause_latched": False,
            "finished": False,
        }

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------
    async def list_items(
        self,
        location: str,
        page_size: int,
        page_index: int,
        subdirectory: str = "",
    ) -> dict[str, Any]:
        self._record("list_items", location, page_size, page_index, subdirectory)
        start = max(0, page_index) * max(0, page_size)
        page = self._files[start : start + page_size] if page_size > 0 else self._files
        return {
            "files": [dict(entry) for entry in page],
            "dirs": [],
            "page_index": page_index,
            "page_size": page_size,
        }

    async def usb_available(self) -> bool:
        self._record("usb_available")
        return False

    async def get_file_metadata(self, location: str, file_path: str) -> dict[str, Any]:
        self._record("get_file_metadata", location, file_path)
        entry = self._find_file(file_path)
        if entry is None:
            raise UnexpectedResponse(f"no such file: {file_path}", status=404)
        return dict(entry)

    async def get_file_thumbnail(
        self, location: str, file_path: str, size: str = "Small"
    ) -> bytes:
        self._record("get_file_thumbnail", location, file_path, size)
        return generate_placeholder(*thumbnail_dimensions(size))

    async def delete_file(self, location: str, file_path: str) -> dict[str, Any]:
        self._record("delete_file", location, file_path)
        entry = self._find_file(file_path)
        if entry is None:
            raise UnexpectedResponse(f"no such file: {file_path}", status=404)
        self._files.remove(entry)
        return {}

    async def get_plate_layer_image(self, plate_id: int, layer: int) -> bytes:
        self._record("get_plate_layer_image", plate_id, layer)
        return generate_placeholder(*thumbnail_dimensions("Small"))

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------
    async def get_config(self) -> dict[str, Any]:
        self._record("get_config")
        return {
            "general": {},
            "advanced": {"backend": self.name},
            "machine": {},
            "vendor": {},
        }

    async def get_backend_version(self) -> str:
        self._record("get_backend_version")
        return "fake 0.0"

    # ------------------------------------------------------------------
    # Print lifecycle
    # ------------------------------------------------------------------
    async def start_print(self, location: str, file_path: str) -> None:
        self._record("start_print", location, file_path)
        self.job = file_path
        self.layer = 0
        self.paused = False
        self.canceled = False

    async def cancel_print(self) -> None:
        self._record("cancel_print")
        if self.job is not None:
            self.canceled = True

    async def pause_print(self) -> None:
        self._record("pause_print")
        if self.job is not None:
            self.paused = True

    async def resume_print(self) -> None:
        self._record("resume_print")
        self.paused = False

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------
    async def get_status(self) -> dict[str, Any]:
        self._record("get_status")
        if self._scripted:
            if len(self._scripted) > 1:
                return self._scripted.pop(0)
            return dict(self._scripted[0])
        return self._simulated_status()

    async def status_stream(
        self, interval: Optional[float] = None
    ) -> AsyncIterator[dict[str, Any]]:
        while True:
            yield await self.get_status()
            await asyncio.sleep(interval or 0)

    async def get_notifications(self) -> list[dict[str, Any]]:
        self._record("get_notifications")
        return [dict(entry) for entry in self._notifications]

    async def disable_notification(self, timestamp: int) -> None:
        self._record("disable_notification", timestamp)
        self._notifications = [
            entry for entry in self._notifications if entry.get("Timestamp") != timestamp
        ]

    # ------------------------------------------------------------------
    # Motion and manual control
    # ------------------------------------------------------------------
    async def move(self, height: float) -> dict[str, Any]:
        self._record("move", height)
        self.z = float(height)
        return ManualResult(ok=True).as_dict()

    async def move_delta(self, delta_mm: float) -> dict[str, Any]:
        self._record("move_delta", delta_mm)
        self.z += delta_mm
        return ManualResult(ok=True).as_dict()

    async def can_move_to_top(self) -> bool:
        self._record("can_move_to_top")
        return "move_to_top" not in self.unsupported

    async def can_move_to_floor(self) -> bool:
        self._record("can_move_to_floor")
        return "move_to_floor" not in self.unsupported

    async def move_to_top(self) -> dict[str, Any]:
        self._record("move_to_top")
        return ManualResult(ok=True).as_dict()

    async def move_to_floor(self) -> dict[str, Any]:
        self._record("move_to_floor")
        self.z = 0.0
        return ManualResult(ok=True).as_dict()

    async def manual_home(self) -> dict[str, Any]:
        self._record("manual_home")
        self.z = 0.0
        return ManualResult(ok=True).as_dict()

    async def manual_cure(self, cure: bool) -> dict[str, Any]:
        self._record("manual_cure", cure)
        return ManualResult(ok=True).as_dict()

    async def manual_command(self, command: str) -> dict[str, Any]:
        self._record("manual_command", command)
        return ManualResult(ok=True, message=command).as_dict()

    async def emergency_stop(self) -> dict[str, Any]:
        self._record("emergency_stop")
        self.job = None
        self.layer = None
        return ManualResult(ok=True).as_dict()

    async def display_test(self, test: str) -> None:
        self._record("display_test", test)

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------
    async def list_profiles(self) -> list[dict[str, Any]]:
        self._record("list_profiles")
        return [dict(profile) for profile in self._profiles.values()]

    async def create_profile(self, fields: Mapping[str, Any]) -> dict[str, Any]:
        self._record("create_profile", dict(fields))
        profile_id = max(self._profiles, default=0) + 1
        self._profiles[profile_id] = {"ProfileID": profile_id, **fields}
        return ManualResult(ok=True).as_dict()

    async def edit_profile(
        self, profile_id: int, fields: Mapping[str, Any]
    ) -> dict[str, Any]:
        self._record("edit_profile", profile_id, dict(fields))
        if profile_id not in self._profiles:
            raise UnexpectedResponse(f"no such profile: {profile_id}", status=404)
        self._profiles[profile_id].update(fields)
        return ManualResult(ok=True).as_dict()

    async def delete_profile(self, profile_id: int) -> dict[str, Any]:
        self._record("delete_profile", profile_id)
        self._profiles.pop(profile_id, None)
        return ManualResult(ok=True).as_dict()

    async def get_temperatures(self) -> dict[str, Optional[float]]:
        self._record("get_temperatures")
        return dict(self._temperatures)

    async def set_vat_temperature(self, celsius: float) -> dict[str, Any]:
        self._record("set_vat_temperature", celsius)
        self._temperatures["vat"] = float(celsius)
        return ManualResult(ok=True).as_dict()

    async def set_chamber_temperature(self, celsius: float) -> dict[str, Any]:
        self._record("set_chamber_temperature", celsius)
        self._temperatures["chamber"] = float(celsius)
        return ManualResult(ok=True).as_dict()

    async def get_analytics(self, n: int) -> list[dict[str, Any]]:
        self._record("get_analytics", n)
        return []

    async def get_analytic_value(self, metric_id: int) -> Any:
        self._record("get_analytic_value", metric_id)
        return None

    async def update_backend(self) -> None:
        self._record("update_backend")

    async def aclose(self) -> None:
        self.closed = True

    async def __aenter__(self) -> "FakeBackendClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


__all__ = ["FakeBackendClient"]
