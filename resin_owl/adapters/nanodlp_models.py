"""Parsing of NanoDLP payloads.

NanoDLP installs differ in key casing and units, so the parsers here accept
every spelling seen in the field and normalise units: heights to
millimetres, volumes to millilitres, print time to seconds.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from .. import constants
from ..core.models import CanonicalStatus, RawStatus
from ..core.print_time import encode_print_time
from ..core.utils import first_present, parse_bool, parse_float, parse_int

_PRINT_TIME_RE = re.compile(r"~?(\d{1,2}):(\d{1,2}):(\d{1,2})")
_VOLUME_CLEANUP_RE = re.compile(r"[^0-9+\-.eE]")

_FILE_KEYS = (
    "file",
    "File",
    "plate",
    "Plate",
    "file_data",
    "FileData",
    "fileData",
    "current_file",
    "CurrentFile",
    "job",
    "Job",
)


def _parse_print_time(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return parse_float(value)
    text = str(value).strip()
    match = _PRINT_TIME_RE.search(text)
    if match:
        hours, minutes, seconds = (int(match.group(i)) for i in (1, 2, 3))
        return float(hours * 3600 + minutes * 60 + seconds)
    return parse_float(text)


def _parse_volume(value: Any) -> Optional[float]:
    """Return a volume in millilitres."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).strip().lower()
    if not text:
        return None
    try:
        parsed = float(_VOLUME_CLEANUP_RE.sub("", text))
    except ValueError:
        return None

    if "µ" in text or "ul" in text or "microl" in text:
        return parsed / 1000.0
    if "l" in text and "ml" not in text:
        return parsed * 1000.0
    if "ml" in text or "cc" in text or "cm3" in text:
        return parsed
    # Unitless values this large are microlitres.
    if parsed >= 1000.0:
        return parsed / 1000.0
    return parsed


def _parse_layer_height(value: Any, *, assume_microns: bool = False) -> Optional[float]:
    """Return a layer height in millimetres."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        source = ""
        numeric: Optional[float] = float(value)
    else:
        source = str(value).lower()
        numeric = parse_float(source)
    if numeric is None:
        return None
    if assume_microns or "µ" in source or "micron" in source:
        return numeric / 1000.0
    if "mm" in source:
        return numeric
    if not re.search(r"[a-z]", source) and numeric >= 10:
        return numeric / 1000.0
    return numeric


@dataclass(slots=True)
class NanoPlate:
    """One entry of ``/plates/list/json``."""

    path: str
    name: str
    layer_count: Optional[int] = None
    print_time: Optional[float] = None
    last_modified: Optional[int] = None
    parent_path: str = ""
    file_size: Optional[int] = None
    material_name: str = "N/A"
    used_material: Optional[float] = None
    layer_height: Optional[float] = None
    location_category: str = "Local"
    plate_id: Optional[int] = None
    preview_available: bool = False

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "NanoPlate":
        path_value = first_present(payload, "path", "Path", "file_path", "File")
        name_value = first_present(payload, "name", "Name")
        path = str(path_value) if path_value is not None else None
        name = str(name_value) if name_value is not None else None
        if name is None and path is not None:
            name = path.split("/")[-1]
        if path is None and name is not None:
            path = name
        path = path or ""
        name = name or path

        parent_value = first_present(payload, "parent_path", "parentPath")
        parent_path = str(parent_value) if parent_value is not None else ""
        if not parent_path and "/" in path:
            parent_path = path.rsplit("/", 1)[0]

        layer_height = _parse_layer_height(
            first_present(payload, "layer_height", "layerHeight", "PlateHeight")
        )
        if layer_height is None:
            layer_height = _parse_layer_height(
                first_present(payload, "LayerThickness", "ZRes"), assume_microns=True
            )

        location = first_present(payload, "location_category", "location")

        return cls(
            path=path,
            name=name,
            layer_count=parse_int(
                first_present(
                    payload, "layer_count", "LayerCount", "LayersCount", "layerCount"
                )
            ),
            print_time=_parse_print_time(
                first_present(payload, "print_time", "printTime", "PrintTime")
            ),
            last_modified=parse_int(
                first_present(
                    payload,
                    "last_modified",
                    "LastModified",
                    "Updated",
                    "UpdatedOn",
                    "CreatedDate",
                )
            ),
            parent_path=parent_path,
            file_size=parse_int(
                first_present(payload, "file_size", "FileSize", "size", "Size")
            ),
            material_name=str(payload.get("ProfileName") or "N/A"),
            used_material=_parse_volume(
                first_present(
                    payload,
                    "used_material",
                    "usedMaterial",
                    "UsedMaterial",
                    "UsedMaterialMl",
                    "UsedResin",
                    "ResinVolume",
                    "UsedVolume",
                    "Volume",
                    "TotalSolidArea",
                )
                or 0
            ),
            layer_height=layer_height,
            location_category=str(location) if location is not None else "Local",
            plate_id=parse_int(first_present(payload, "PlateID", "plate_id")),
            preview_available=parse_bool(
                first_present(payload, "Preview", "preview", "HasPreview")
            ),
        )

    def matches(self, file_path: str) -> bool:
        wanted = {
            file_path.strip().lower(),
            file_path.lstrip("/").strip().lower(),
        }
        candidates = {self.path.strip().lower(), "/" + self.path.strip().lower()}
        if self.name:
            candidates.add(self.name.strip().lower())
        return bool(wanted & candidates)

    def file_data(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "name": self.name,
            "last_modified": self.last_modified or 0,
            "parent_path": self.parent_path,
            "file_size": self.file_size,
        }

    def as_file_entry(self) -> Dict[str, Any]:
        entry: Dict[str, Any] = {
            "file_data": self.file_data(),
            "location_category": self.location_category,
            "material_name": self.material_name,
            "used_material": self.used_material or 0.0,
            "print_time": self.print_time or 0.0,
            "layer_count": self.layer_count or 0,
            "preview_available": self.preview_available,
        }
        if self.print_time is not None:
            entry["print_time_formatted"] = encode_print_time(self.print_time)
        if self.layer_height is not None:
            entry["layer_height"] = self.layer_height
        if self.plate_id is not None:
            entry["plate_id"] = self.plate_id
        return entry

    def as_metadata(self) -> Dict[str, Any]:
        metadata: Dict[str, Any] = {
            "file_data": self.file_data(),
            "layer_height": self.layer_height,
            "material_name": self.material_name,
            "used_material": self.used_material or 0.0,
            "print_time": self.print_time or 0.0,
            "plate_id": self.plate_id,
            "preview_available": self.preview_available,
        }
        if self.print_time is not None:
            metadata["print_time_formatted"] = encode_print_time(self.print_time)
        return metadata


@dataclass(slots=True)
class NanoStatus:
    """Parsed ``/status`` payload."""

    printing: bool
    paused: bool
    state: str
    state_code: Optional[int] = None
    status_message: Optional[str] = None
    current_height: Optional[int] = None
    layer_id: Optional[int] = None
    layers_count: Optional[int] = None
    resin_level: Optional[float] = None
    temp: Optional[float] = None
    mcu_temp: Optional[float] = None
    plate_id: Optional[int] = None
    plate: Optional[NanoPlate] = None
    curing: bool = False

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "NanoStatus":
        plate = None
        for key in _FILE_KEYS:
            value = payload.get(key)
            if isinstance(value, Mapping):
                plate = NanoPlate.from_dict(value)
                break

        printing = (
            payload.get("Printing") is True
            or payload.get("printing") is True
            or payload.get("Started") == 1
            or payload.get("started") == 1
        )
        paused = payload.get("Paused") is True or payload.get("paused") is True
        message = first_present(payload, "Status", "status")

        if printing:
            state = "printing"
        elif paused:
            state = "paused"
        else:
            state = "idle"

        return cls(
            printing=printing,
            paused=paused,
            state=state,
            state_code=parse_int(first_present(payload, "State", "state_code")),
            status_message=str(message) if message is not None else None,
            current_height=parse_int(
                first_present(payload, "CurrentHeight", "current_height")
            ),
            layer_id=parse_int(first_present(payload, "LayerID", "layer_id")),
            layers_count=parse_int(
                first_present(payload, "LayersCount", "layers_count")
            ),
            resin_level=parse_float(
                first_present(payload, "resin", "ResinLevelMm", "resin_level_mm")
            ),
            temp=parse_float(payload.get("temp")),
            mcu_temp=parse_float(payload.get("mcu")),
            plate_id=parse_int(
                first_present(payload, "PlateID", "plate_id", "Plateid", "plateId")
            ),
            plate=plate,
            curing=payload.get("Curing") is True or payload.get("curing") is True,
        )

    @property
    def z(self) -> Optional[float]:
        if self.current_height is None:
            return None
        return self.current_height / constants.NANODLP_UNITS_PER_MM

    @property
    def progress(self) -> Optional[float]:
        if self.layer_id is None or not self.layers_count:
            return None
        return min(max(self.layer_id / self.layers_count, 0.0), 1.0)

    def to_raw_status(self) -> RawStatus:
        return RawStatus(
            printing=self.printing,
            paused=self.paused,
            state=self.state,
            state_code=self.state_code,
            layer_id=self.layer_id,
            layers_count=self.layers_count,
            has_file=self.plate is not None,
        )


def map_status(nano: NanoStatus, canonical: CanonicalStatus) -> Dict[str, Any]:
    """Translate a NanoDLP snapshot into the ``/status`` shape served by Odyssey.

    A completed cancel (idle while latched) is reported with ``layer=None`` so
    display layers treat it as canceled. A finished job reports its final
    layer so it renders as finished.
    """

    plate = nano.plate
    print_data: Optional[Dict[str, Any]] = None
    if plate is not None:
        print_data = {
            "layer_count": plate.layer_count or nano.layers_count or 0,
            "used_material": plate.used_material or 0.0,
            "print_time": plate.print_time or 0,
            "file_data": {
                "name": plate.name or plate.path,
                "path": plate.path or plate.name,
                "location_category": "Local",
            },
        }
    elif (
        nano.printing
        or nano.paused
        or nano.layer_id is not None
        or nano.layers_count is not None
    ):
        # Active job without file details yet.
        print_data = {
            "layer_count": nano.layers_count or 0,
            "used_material": 0.0,
            "print_time": 0,
            "file_data": None,
        }

    layer = nano.layer_id
    if canonical.status == "Idle":
        if canonical.cancel_latched:
            layer = None
        elif canonical.finished and layer is None:
            if plate is not None and plate.layer_count is not None:
                layer = plate.layer_count
            else:
                layer = nano.layers_count

    return {
        "status": canonical.status,
        "paused": canonical.paused,
        "layer": layer,
        "print_data": print_data,
        "device_status_message": nano.status_message,
        "physical_state": {"z": nano.z or 0.0, "curing": nano.curing},
        "cancel_latched": canonical.cancel_latched,
        "pause_latched": canonical.pause_latched,
        "finished": canonical.finished,
    }


__all__ = ["NanoPlate", "NanoStatus", "map_status"]
