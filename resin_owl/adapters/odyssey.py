"""Odyssey engine client.

Odyssey is the primary printing engine. Its REST API takes arguments as
query-string parameters and answers with JSON; status changes are also pushed
as server-sent events on ``/status/stream``.
"""

from __future__ import annotations

import json
import logging
from contextlib import aclosing
from typing import Any, AsyncIterator, Mapping, Optional

import aiohttp

from ..errors import BackendError, UnexpectedResponse, Unsupported
from .http import HttpTransport, expect_object

LOGGER = logging.getLogger(__name__)


class OdysseyClient:
    """BackendClient implementation for the Odyssey REST API."""

    name = "odyssey"

    def __init__(
        self,
        base_url: str,
        *,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: float = 5.0,
    ) -> None:
        self._http = HttpTransport(
            base_url, label="Odyssey", session=session, timeout=timeout
        )
        LOGGER.info("Constructed Odyssey client for %s", self._http.base_url)

    @property
    def base_url(self) -> str:
        return self._http.base_url

    async def __aenter__(self) -> "OdysseyClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

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
        return await self._get_object(
            "/files",
            {
                "location": location,
                "subdirectory": subdirectory,
                "page_index": str(page_index),
                "page_size": str(page_size),
            },
        )

    async def usb_available(self) -> bool:
        """Report whether a USB location can be listed.

        The local listing is probed first so that an unreachable engine is
        not mistaken for a missing USB drive.
        """
        try:
            await self.list_items("Local", 1, 0)
        except BackendError:
            return False

        try:
            await self.list_items("Usb", 1, 0)
        except BackendError as exc:
            LOGGER.debug("USB listing unavailable: %s", exc)
            return False
        return True

    async def get_file_metadata(self, location: str, file_path: str) -> dict[str, Any]:
        return await self._get_object(
            "/file/metadata", _file_params(location, file_path)
        )

    async def get_file_thumbnail(
        self, location: str, file_path: str, size: str = "Small"
    ) -> bytes:
        params = _file_params(location, file_path)
        params["size"] = size
        response = await self._http.get("/file/thumbnail", params)
        return response.body

    async def delete_file(self, location: str, file_path: str) -> dict[str, Any]:
        response = await self._http.delete("/file", _file_params(location, file_path))
        return _object_or_empty(response.json(), "Odyssey /file")

    async def get_plate_layer_image(self, plate_id: int, layer: int) -> bytes:
        raise Unsupported(self.name, "get_plate_layer_image")

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------
    async def get_config(self) -> dict[str, Any]:
        return await self._get_object("/config")

    async def get_backend_version(self) -> str:
        config = await self.get_config()
        for section in ("general", "advanced", "machine"):
            values = config.get(section)
            if isinstance(values, Mapping):
                version = values.get("odyssey_version") or values.get("version")
                if version:
                    return str(version)
        version = config.get("version")
        if version:
            return str(version)
        raise UnexpectedResponse("Odyssey /config does not report a version")

    # ------------------------------------------------------------------
    # Print lifecycle
    # ------------------------------------------------------------------
    async def start_print(self, location: str, file_path: str) -> None:
        LOGGER.info("Odyssey start print %s (%s)", file_path, location)
        await self._http.post("/print/start", _file_params(location, file_path))

    async def cancel_print(self) -> None:
        await self._http.post("/print/cancel")

    async def pause_print(self) -> None:
        await self._http.post("/print/pause")

    async def resume_print(self) -> None:
        await self._http.post("/print/resume")

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------
    async def get_status(self) -> dict[str, Any]:
        return await self._get_object("/status")

    async def status_stream(
        self, interval: Optional[float] = None
    ) -> AsyncIterator[dict[str, Any]]:
        """Yield snapshots pushed on ``/status/stream``.

        ``interval`` is ignored: the engine decides when to push. Lines that
        are not ``data:`` events, or whose payload is not a JSON object, are
        skipped.
        """

        async with aclosing(self._http.stream_lines("/status/stream")) as lines:
            async for line in lines:
                if not line.startswith("data:"):
                    continue
                payload = line[5:].strip()
                if not payload:
                    continue
                try:
                    decoded = json.loads(payload)
                except ValueError:
                    LOGGER.debug("Skipping malformed status event: %.80s", payload)
                    continue
                if isinstance(decoded, dict):
                    yield decoded

    async def get_notifications(self) -> list[dict[str, Any]]:
        raise Unsupported(self.name, "get_notifications")

    async def disable_notification(self, timestamp: int) -> None:
        raise Unsupported(self.name, "disable_notification")

    # ------------------------------------------------------------------
    # Motion and manual control
    # ------------------------------------------------------------------
    async def move(self, height: float) -> dict[str, Any]:
        return await self._manual("/manual", {"z": str(float(height))})

    async def move_delta(self, delta_mm: float) -> dict[str, Any]:
        status = await self.get_status()
        physical = status.get("physical_state")
        current = physical.get("z") if isinstance(physical, Mapping) else None
        if not isinstance(current, (int, float)) or isinstance(current, bool):
            raise UnexpectedResponse(
                "Odyssey /status does not report physical_state.z"
            )
        return await self.move(float(current) + delta_mm)

    async def can_move_to_top(self) -> bool:
        return False

    async def can_move_to_floor(self) -> bool:
        return False

    async def move_to_top(self) -> dict[str, Any]:
        raise Unsupported(self.name, "move_to_top")

    async def move_to_floor(self) -> dict[str, Any]:
        raise Unsupported(self.name, "move_to_floor")

    async def manual_home(self) -> dict[str, Any]:
        return await self._manual("/manual/home", {})

    async def manual_cure(self, cure: bool) -> dict[str, Any]:
        return await self._manual("/manual", {"cure": "true" if cure else "false"})

    async def manual_command(self, command: str) -> dict[str, Any]:
        return await self._manual("/manual/hardware_command", {"command": command})

    async def emergency_stop(self) -> dict[str, Any]:
        raise Unsupported(self.name, "emergency_stop")

    async def display_test(self, test: str) -> None:
        await self._http.post("/manual/display_test", {"test": test})

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------
    async def list_profiles(self) -> list[dict[str, Any]]:
        raise Unsupported(self.name, "list_profiles")

    async def create_profile(self, fields: Mapping[str, Any]) -> dict[str, Any]:
        raise Unsupported(self.name, "create_profile")

    async def edit_profile(
        self, profile_id: int, fields: Mapping[str, Any]
    ) -> dict[str, Any]:
        raise Unsupported(self.name, "edit_profile")

    async def delete_profile(self, profile_id: int) -> dict[str, Any]:
        raise Unsupported(self.name, "delete_profile")

    async def get_temperatures(self) -> dict[str, Optional[float]]:
        raise Unsupported(self.name, "get_temperatures")

    async def set_vat_temperature(self, celsius: float) -> dict[str, Any]:
        raise Unsupported(self.name, "set_vat_temperature")

    async def set_chamber_temperature(self, celsius: float) -> dict[str, Any]:
        raise Unsupported(self.name, "set_chamber_temperature")

    async def get_analytics(self, n: int) -> list[dict[str, Any]]:
        raise Unsupported(self.name, "get_analytics")

    async def get_analytic_value(self, metric_id: int) -> Any:
        raise Unsupported(self.name, "get_analytic_value")

    async def update_backend(self) -> None:
        raise Unsupported(self.name, "update_backend")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    async def _get_object(
        self, path: str, params: Optional[Mapping[str, str]] = None
    ) -> dict[str, Any]:
        response = await self._http.get(path, params or {})
        return expect_object(response.json(), f"Odyssey {path}")

    async def _manual(self, path: str, params: Mapping[str, str]) -> dict[str, Any]:
        response = await self._http.post(path, params)
        return _object_or_empty(response.json(), f"Odyssey {path}")


def _file_params(location: str, file_path: str) -> dict[str, str]:
    # Odyssey expects doubled separators stripped from file paths.
    return {"location": location, "file_path": file_path.replace("//", "")}


def _object_or_empty(payload: Any, context: str) -> dict[str, Any]:
    if payload is None:
        return {}
    return expect_object(payload, context)


__all__ = ["OdysseyClient"]
