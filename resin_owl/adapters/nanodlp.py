"""NanoDLP control-daemon client.

NanoDLP exposes most actions as plain ``GET`` endpoints and reports status
with its own numeric ``State`` codes. Status snapshots are run through a
:class:`~resin_owl.core.status.StatusCanonicalizer` owned by the client and
returned in the same ``/status`` shape Odyssey serves, so display layers do
not care which engine they talk to.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, AsyncIterator, Mapping, Optional

import aiohttp

from .. import constants
from ..core.models import ManualResult
from ..core.status import StatusCanonicalizer
from ..errors import BackendError, UnexpectedResponse, Unsupported
from .http import HttpResponse, HttpTransport, expect_list, expect_object
from .nanodlp_models import NanoPlate, NanoStatus, map_status
from .thumbnails import generate_placeholder, thumbnail_dimensions

LOGGER = logging.getLogger(__name__)

_LARGE_STATUS_FIELDS = ("FillAreas",)

_MACHINE_FIELDS = (
    ("Name", "machine_name"),
    ("PrinterID", "printer_id"),
    ("UUID", "uuid"),
    ("ZAxisHeight", "z_axis_height"),
    ("VatWidth", "vat_width"),
    ("VatHeight", "vat_height"),
    ("ProjectorWidth", "projector_width"),
    ("ProjectorHeight", "projector_height"),
    ("DefaultProfile", "default_profile"),
)


class NanoDlpClient:
    """BackendClient implementation for NanoDLP."""

    name = "nanodlp"

    def __init__(
        self,
        base_url: str,
        *,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: float = 5.0,
        canonicalizer: Optional[StatusCanonicalizer] = None,
        poll_interval: float = constants.DEFAULT_STATUS_POLL_SECONDS,
    ) -> None:
        self._http = HttpTransport(
            base_url, label="NanoDLP", session=session, timeout=timeout
        )
        self.canonicalizer = canonicalizer or StatusCanonicalizer()
        self.poll_interval = poll_interval
        LOGGER.info("Constructed NanoDLP client for %s", self._http.base_url)

    @property
    def base_url(self) -> str:
        return self._http.base_url

    async def __aenter__(self) -> "NanoDlpClient":
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
        plates = await self._fetch_plates()
        start = max(0, page_index) * max(0, page_size)
        page = plates[start : start + page_size] if page_size > 0 else plates
        LOGGER.debug(
            "Listed %d of %d NanoDLP plates (page %d)",
            len(page),
            len(plates),
            page_index,
        )
        return {
            "files": [plate.as_file_entry() for plate in page],
            "dirs": [],
            "page_index": page_index,
            "page_size": page_size,
        }

    async def usb_available(self) -> bool:
        # Plates live on the device; there is no USB location to browse.
        return False

    async def get_file_metadata(self, location: str, file_path: str) -> dict[str, Any]:
        plate = await self._find_plate(file_path)
        if plate is not None:
            return plate.as_metadata()
        return {
            "file_data": {
                "path": file_path,
                "name": file_path,
                "last_modified": 0,
                "parent_path": "",
            },
        }

    async def get_file_thumbnail(
        self, location: str, file_path: str, size: str = "Small"
    ) -> bytes:
        """Return the plate preview, or a placeholder when none exists."""

        width, height = thumbnail_dimensions(size)
        plate = await self._find_plate(file_path)
        if plate is None or plate.plate_id is None or not plate.preview_available:
            LOGGER.debug("No NanoDLP preview for %s; using placeholder", file_path)
            return generate_placeholder(width, height)

        try:
            response = await self._http.get(f"/static/plates/{plate.plate_id}/3d.png")
        except UnexpectedResponse as exc:
            LOGGER.debug("NanoDLP preview for plate %s failed: %s", plate.plate_id, exc)
            return generate_placeholder(width, height)
        if not response.body:
            return generate_placeholder(width, height)
        return response.body

    async def delete_file(self, location: str, file_path: str) -> dict[str, Any]:
        plate = await self._find_plate(file_path)
        if plate is None or plate.plate_id is None:
            raise UnexpectedResponse(f"NanoDLP has no plate matching {file_path!r}")
        LOGGER.info("Deleting NanoDLP plate %s (%s)", plate.plate_id, plate.path)
        response = await self._http.get(f"/plate/delete/{plate.plate_id}")
        return _manual_result(response)

    async def get_plate_layer_image(self, plate_id: int, layer: int) -> bytes:
        response = await self._http.get(f"/static/plates/{plate_id}/{layer}.png")
        return response.body

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------
    async def get_config(self) -> dict[str, Any]:
        """Expose device details from ``/status`` in the Odyssey config shape.

        NanoDLP has no dedicated configuration endpoint. The ``vendor``
        section carries the machine record where the install provides one.
        """

        decoded = await self._fetch_raw_status()
        vendor = await self._fetch_machine()
        return {
            "general": {
                "hostname": decoded.get("Hostname") or decoded.get("hostname") or "",
                "ip": decoded.get("IP") or decoded.get("ip") or "",
                "status": decoded.get("Status") or decoded.get("status") or "",
            },
            "advanced": {
                "backend": self.name,
                "nanodlp": {
                    "build": decoded.get("Build") or decoded.get("build"),
                    "version": decoded.get("Version") or decoded.get("version"),
                },
            },
            "machine": {
                "disk": decoded.get("disk") or decoded.get("Disk"),
                "wifi": decoded.get("Wifi") or decoded.get("wifi"),
                "resin_level": decoded.get("resin")
                or decoded.get("ResinLevelMm")
                or decoded.get("resin_level_mm"),
            },
            "vendor": vendor,
        }

    async def get_backend_version(self) -> str:
        decoded = await self._fetch_raw_status()
        version = decoded.get("Version") or decoded.get("version")
        build = decoded.get("Build") or decoded.get("build")
        if version is None and build is None:
            raise UnexpectedResponse("NanoDLP /status does not report a version")
        if version is None:
            return f"NanoDLP build {build}"
        if build is None:
            return f"NanoDLP {version}"
        return f"NanoDLP {version} (build {build})"

    # ------------------------------------------------------------------
    # Print lifecycle
    # ------------------------------------------------------------------
    async def start_print(self, location: str, file_path: str) -> None:
        """Start the plate matching ``file_path``.

        ``file_path`` may also be a bare plate id.
        """

        plate = await self._find_plate(file_path)
        if plate is not None and plate.plate_id is not None:
            plate_ref = str(plate.plate_id)
        else:
            plate_ref = file_path.strip("/")
        LOGGER.info("NanoDLP start print %s", plate_ref)
        await self._http.get(f"/printer/start/{plate_ref}")

    async def cancel_print(self) -> None:
        LOGGER.info("NanoDLP stop print")
        await self._http.get("/printer/stop")

    async def pause_print(self) -> None:
        LOGGER.info("NanoDLP pause print")
        await self._http.get("/printer/pause")

    async def resume_print(self) -> None:
        LOGGER.info("NanoDLP resume print")
        await self._http.get("/printer/unpause")

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------
    async def get_status(self) -> dict[str, Any]:
        decoded = await self._fetch_raw_status()
        nano = NanoStatus.from_dict(decoded)

        if nano.plate is None and nano.plate_id is not None and nano.printing:
            plates = await self._fetch_plates()
            nano.plate = next(
                (plate for plate in plates if plate.plate_id == nano.plate_id), None
            )
            if nano.plate is not None:
                LOGGER.debug("Resolved PlateID %s -> %s", nano.plate_id, nano.plate.name)

        canonical = self.canonicalizer.canonicalize(nano.to_raw_status())
        return map_status(nano, canonical)

    async def status_stream(
        self, interval: Optional[float] = None
    ) -> AsyncIterator[dict[str, Any]]:
        """Poll ``/status`` forever, yielding each snapshot as it arrives.

        Failed polls are logged and skipped; the sequence keeps going.
        """

        delay = self.poll_interval if interval is None else interval
        while True:
            try:
                snapshot = await self.get_status()
            except BackendError as exc:
                LOGGER.warning("NanoDLP status poll failed: %s", exc)
            else:
                yield snapshot
            await asyncio.sleep(delay)

    async def get_notifications(self) -> list[dict[str, Any]]:
        response = await self._http.get("/notification")
        payload = response.json()
        if payload is None:
            return []
        entries = expect_list(payload, "NanoDLP /notification")
        return [entry for entry in entries if isinstance(entry, dict)]

    async def disable_notification(self, timestamp: int) -> None:
        await self._http.get(f"/notification/disable/{int(timestamp)}")

    # ------------------------------------------------------------------
    # Motion and manual control
    # ------------------------------------------------------------------
    async def move(self, height: float) -> dict[str, Any]:
        """Move to an absolute ``height`` (mm).

        NanoDLP only moves relative to the current position, so the current
        height is read first; if it cannot be read the move fails.
        """

        nano = NanoStatus.from_dict(await self._fetch_raw_status())
        current = nano.z
        if current is None:
            raise UnexpectedResponse("NanoDLP /status does not report CurrentHeight")
        LOGGER.info("NanoDLP move to %.3fmm (current %.3fmm)", height, current)
        return await self.move_delta(height - current)

    async def move_delta(self, delta_mm: float) -> dict[str, Any]:
        microns = round(delta_mm * 1000)
        if microns == 0:
            return ManualResult(ok=True, message="no-op").as_dict()

        direction = "up" if microns > 0 else "down"
        response = await self._http.get(
            f"/z-axis/move/{direction}/micron/{abs(microns)}"
        )
        return _manual_result(response)

    async def can_move_to_top(self) -> bool:
        return await self._reports_height()

    async def can_move_to_floor(self) -> bool:
        return await self._reports_height()

    async def move_to_top(self) -> dict[str, Any]:
        return _manual_result(await self._http.get("/z-axis/top"))

    async def move_to_floor(self) -> dict[str, Any]:
        return _manual_result(await self._http.get("/z-axis/bottom"))

    async def manual_home(self) -> dict[str, Any]:
        return _manual_result(await self._http.get("/z-axis/calibrate"))

    async def manual_cure(self, cure: bool) -> dict[str, Any]:
        raise Unsupported(self.name, "manual_cure")

    async def manual_command(self, command: str) -> dict[str, Any]:
        raise Unsupported(self.name, "manual_command")

    async def emergency_stop(self) -> dict[str, Any]:
        LOGGER.warning("NanoDLP emergency stop requested")
        return _manual_result(await self._http.get("/printer/force-stop"))

    async def display_test(self, test: str) -> None:
        raise Unsupported(self.name, "display_test")

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------
    async def list_profiles(self) -> list[dict[str, Any]]:
        response = await self._http.get("/profiles/json")
        entries = expect_list(response.json(), "NanoDLP /profiles/json")
        return [entry for entry in entries if isinstance(entry, dict)]

    async def create_profile(self, fields: Mapping[str, Any]) -> dict[str, Any]:
        response = await self._http.post("/profile/add", data=_form(fields))
        return _manual_result(response)

    async def edit_profile(
        self, profile_id: int, fields: Mapping[str, Any]
    ) -> dict[str, Any]:
        response = await self._http.post(
            f"/profile/edit/{int(profile_id)}", data=_form(fields)
        )
        return _manual_result(response)

    async def delete_profile(self, profile_id: int) -> dict[str, Any]:
        return _manual_result(await self._http.get(f"/profile/delete/{int(profile_id)}"))

    async def get_temperatures(self) -> dict[str, Optional[float]]:
        nano = NanoStatus.from_dict(await self._fetch_raw_status())
        return {"vat": nano.temp, "mcu": nano.mcu_temp}

    async def set_vat_temperature(self, celsius: float) -> dict[str, Any]:
        return await self._set_temperature("vat", celsius)

    async def set_chamber_temperature(self, celsius: float) -> dict[str, Any]:
        return await self._set_temperature("chamber", celsius)

    async def get_analytics(self, n: int) -> list[dict[str, Any]]:
        response = await self._http.get(f"/analytic/data/{int(n)}")
        entries = expect_list(response.json(), "NanoDLP /analytic/data")
        return [entry for entry in entries if isinstance(entry, dict)]

    async def get_analytic_value(self, metric_id: int) -> Any:
        response = await self._http.get(f"/analytic/value/{int(metric_id)}")
        try:
            return response.json()
        except UnexpectedResponse:
            return response.text.strip()

    async def update_backend(self) -> None:
        LOGGER.info("Requesting NanoDLP software update")
        await self._http.get("/update")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    async def _fetch_raw_status(self) -> dict[str, Any]:
        response = await self._http.get("/status")
        decoded = expect_object(response.json(), "NanoDLP /status")
        for key in _LARGE_STATUS_FIELDS:
            decoded.pop(key, None)
        return decoded

    async def _fetch_plates(self) -> list[NanoPlate]:
        response = await self._http.get("/plates/list/json")
        plates: list[NanoPlate] = []
        for entry in _extract_plate_entries(response.json()):
            if isinstance(entry, Mapping):
                plates.append(NanoPlate.from_dict(entry))
        return plates

    async def _fetch_machine(self) -> dict[str, Any]:
        """Return the machine record, or ``{}`` on installs without one."""
        try:
            response = await self._http.get("/json/db/machine.json")
            payload = response.json()
        except UnexpectedResponse as exc:
            LOGGER.debug("NanoDLP machine record unavailable: %s", exc)
            return {}
        if not isinstance(payload, Mapping):
            return {}
        return {
            target: payload[source]
            for source, target in _MACHINE_FIELDS
            if payload.get(source) is not None
        }

    async def _find_plate(self, file_path: str) -> Optional[NanoPlate]:
        for plate in await self._fetch_plates():
            if plate.matches(file_path):
                return plate
        return None

    async def _reports_height(self) -> bool:
        try:
            decoded = await self._fetch_raw_status()
        except BackendError as exc:
            LOGGER.debug("NanoDLP capability probe failed: %s", exc)
            return False
        return "CurrentHeight" in decoded or "physical_state" in decoded

    async def _set_temperature(self, heater: str, celsius: float) -> dict[str, Any]:
        target = max(0, round(celsius))
        LOGGER.info("NanoDLP set %s temperature to %d°C", heater, target)
        response = await self._http.get(f"/printer/temperature/{heater}/{target}")
        return _manual_result(response)


def _extract_plate_entries(decoded: Any) -> list[Any]:
    if decoded is None:
        return []
    if isinstance(decoded, list):
        return decoded
    if isinstance(decoded, Mapping):
        for key in ("plates", "files", "data"):
            value = decoded.get(key)
            if isinstance(value, list):
                return value
        nested = [value for value in decoded.values() if isinstance(value, Mapping)]
        return nested or [decoded]
    raise UnexpectedResponse(
        f"NanoDLP /plates/list/json returned {type(decoded).__name__}"
    )


def _manual_result(response: HttpResponse) -> dict[str, Any]:
    try:
        payload = response.json()
    except UnexpectedResponse:
        payload = response.text
    return ManualResult.from_payload(payload).as_dict()


def _form(fields: Mapping[str, Any]) -> dict[str, str]:
    form: dict[str, str] = {}
    for key, value in fields.items():
        if isinstance(value, bool):
            form[key] = "1" if value else "0"
        elif value is not None:
            form[key] = str(value)
    return form


__all__ = ["NanoDlpClient"]
