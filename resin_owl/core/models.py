"""Value types exchanged between backend clients and display layers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from .print_time import decode_print_time, encode_print_time
from .utils import parse_float, parse_int


@dataclass(slots=True, frozen=True)
class RawStatus:
    """Status fields as reported by a backend poll.

    ``state_code`` is the engine's numeric state when it reports one. The
    optional job fields are only used to hint that an idle snapshot follows a
    finished job.
    """

    printing: bool
    paused: bool
    state: str = ""
    state_code: Optional[int] = None
    layer_id: Optional[int] = None
    layers_count: Optional[int] = None
    has_file: bool = False


@dataclass(slots=True, frozen=True)
class CanonicalStatus:
    status: str
    cancel_latched: bool
    paused: bool = False
    pause_latched: bool = False
    finished: bool = False

    def as_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "paused": self.paused,
            "cancel_latched": self.cancel_latched,
            "pause_latched": self.pause_latched,
            "finished": self.finished,
        }


@dataclass(slots=True)
class FileData:
    path: str
    name: str
    last_modified: int = 0
    parent_path: str = ""
    file_size: Optional[int] = None

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "FileData":
        return cls(
            path=str(payload.get("path") or ""),
            name=str(payload.get("name") or ""),
            last_modified=parse_int(payload.get("last_modified")) or 0,
            parent_path=str(payload.get("parent_path") or ""),
            file_size=parse_int(payload.get("file_size")),
        )

    def as_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "name": self.name,
            "last_modified": self.last_modified,
            "parent_path": self.parent_path,
            "file_size": self.file_size,
        }


@dataclass(slots=True)
class FileEntry:
    file_data: FileData
    location_category: str
    used_material: Optional[float] = None
    print_time: Optional[int] = None
    layer_height: Optional[float] = None
    layer_count: Optional[int] = None

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "FileEntry":
        return cls(
            file_data=FileData.from_dict(payload.get("file_data") or {}),
            location_category=str(payload.get("location_category") or "Local"),
            used_material=parse_float(payload.get("used_material")),
            print_time=decode_print_time(payload.get("print_time")),
            layer_height=parse_float(payload.get("layer_height")),
            layer_count=parse_int(payload.get("layer_count")),
        )

    def as_dict(self) -> Dict[str, Any]:
        return {
            "file_data": self.file_data.as_dict(),
            "location_category": self.location_category,
            "used_material": self.used_material,
            "print_time": encode_print_time(self.print_time),
            "layer_height": self.layer_height,
            "layer_count": self.layer_count,
        }


@dataclass(slots=True)
class DirEntry:
    path: str
    name: str
    last_modified: int
    location_category: str
    parent_path: str

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "DirEntry":
        return cls(
            path=str(payload.get("path") or ""),
            name=str(payload.get("name") or ""),
            last_modified=parse_int(payload.get("last_modified")) or 0,
            location_category=str(payload.get("location_category") or "Local"),
            parent_path=str(payload.get("parent_path") or ""),
        )


@dataclass(slots=True)
class FilesListing:
    files: List[FileEntry] = field(default_factory=list)
    dirs: List[DirEntry] = field(default_factory=list)
    page_index: Optional[int] = None
    page_size: Optional[int] = None

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "FilesListing":
        return cls(
            files=[FileEntry.from_dict(item) for item in payload.get("files") or []],
            dirs=[DirEntry.from_dict(item) for item in payload.get("dirs") or []],
            page_index=parse_int(payload.get("page_index")),
            page_size=parse_int(payload.get("page_size")),
        )


@dataclass(slots=True)
class FileMetadata:
    file_data: FileData
    layer_height: Optional[float] = None
    material_name: Optional[str] = None
    used_material: Optional[float] = None
    print_time: Optional[int] = None

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "FileMetadata":
        material = payload.get("material_name")
        return cls(
            file_data=FileData.from_dict(payload.get("file_data") or {}),
            layer_height=parse_float(payload.get("layer_height")),
            material_name=str(material) if material is not None else None,
            used_material=parse_float(payload.get("used_material")),
            print_time=decode_print_time(payload.get("print_time")),
        )

    @property
    def formatted_print_time(self) -> str:
        return encode_print_time(self.print_time or 0) or "00:00:00"


@dataclass(slots=True)
class ManualResult:
    """Outcome of a manual/hardware command."""

    ok: bool
    message: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Any) -> "ManualResult":
        # Some engines answer with JSON, some with plain text, some with nothing.
        if isinstance(payload, ManualResult):
            return payload
        if isinstance(payload, Mapping):
            ok = payload.get("ok")
            if not isinstance(ok, bool):
                ok = payload.get("result") == "ok"
            message = payload.get("message")
            return cls(ok=ok, message=str(message) if message is not None else None)
        if isinstance(payload, str):
            text = payload.strip()
            return cls(ok=True, message=text or None)
        if isinstance(payload, bool):
            return cls(ok=payload)
        return cls(ok=True)

    def as_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"ok": self.ok}
        if self.message is not None:
            result["message"] = self.message
        return result


@dataclass(slots=True)
class PrinterStatus:
    """Engine status in the shape served by ``/status``.

    The derived properties interpret backend state for display layers.
    """

    status: str
    paused: bool = False
    layer: Optional[int] = None
    layer_count: Optional[int] = None
    print_time: int = 0
    file_name: Optional[str] = None
    has_print_data: bool = False
    z: float = 0.0
    curing: bool = False
    cancel_latched: bool = False
    pause_latched: bool = False
    finished: bool = False

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "PrinterStatus":
        print_data = payload.get("print_data")
        physical = payload.get("physical_state") or {}
        layer_count = None
        print_time = 0
        file_name = None
        if isinstance(print_data, Mapping):
            layer_count = parse_int(print_data.get("layer_count"))
            print_time = decode_print_time(print_data.get("print_time")) or 0
            file_data = print_data.get("file_data")
            if isinstance(file_data, Mapping):
                file_name = file_data.get("name")
        return cls(
            status=str(payload.get("status") or "Idle"),
            paused=payload.get("paused") is True,
            layer=parse_int(payload.get("layer")),
            layer_count=layer_count,
            print_time=print_time,
            file_name=file_name,
            has_print_data=isinstance(print_data, Mapping),
            z=parse_float(physical.get("z")) or 0.0,
            curing=physical.get("curing") is True,
            cancel_latched=payload.get("cancel_latched") is True,
            pause_latched=payload.get("pause_latched") is True,
            finished=payload.get("finished") is True,
        )

    @property
    def is_canceled(self) -> bool:
        return self.layer is None and (
            self.has_print_data or self.status != "Printing"
        )

    @property
    def is_printing(self) -> bool:
        return self.status == "Printing" and not self.is_canceled

    @property
    def is_idle(self) -> bool:
        return self.status == "Idle"

    @property
    def progress(self) -> float:
        if self.layer is None or not self.layer_count:
            return 0.0
        return min(max(self.layer, 0), self.layer_count) / self.layer_count

    @property
    def formatted_elapsed_print_time(self) -> str:
        return encode_print_time(self.print_time) or "00:00:00"

    def display_label(
        self, *, transitional_cancel: bool = False, transitional_pause: bool = False
    ) -> str:
        if transitional_cancel and not self.is_canceled:
            return "Canceling"
        if self.is_canceled:
            return "Canceled"
        if transitional_pause and not self.paused:
            return "Pausing"
        if self.paused:
            return "Paused"
        if self.is_idle and self.layer is not None:
            return "Finished"
        if self.curing:
            return "Curing"
        return self.status


__all__ = [
    "CanonicalStatus",
    "DirEntry",
    "FileData",
    "FileEntry",
    "FileMetadata",
    "FilesListing",
    "ManualResult",
    "PrinterStatus",
    "RawStatus",
]
