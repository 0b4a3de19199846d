"""Core primitives for resin-owl."""

from .models import (
    CanonicalStatus,
    DirEntry,
    FileData,
    FileEntry,
    FileMetadata,
    FilesListing,
    ManualResult,
    PrinterStatus,
    RawStatus,
)
from .print_time import decode_print_time, encode_print_time
from .protocols import BackendClient
from .status import DisplayStatus, StatusCanonicalizer, infer_state_code

__all__ = [
    "BackendClient",
    "CanonicalStatus",
    "DirEntry",
    "DisplayStatus",
    "FileData",
    "FileEntry",
    "FileMetadata",
    "FilesListing",
    "ManualResult",
    "PrinterStatus",
    "RawStatus",
    "StatusCanonicalizer",
    "decode_print_time",
    "encode_print_time",
    "infer_state_code",
]
