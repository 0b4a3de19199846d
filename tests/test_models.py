"""Tests for the value types exchanged with display layers."""

import json

from resin_owl.core.models import (
    FileMetadata,
    FilesListing,
    ManualResult,
    PrinterStatus,
)


def _status(**overrides):
    payload = {
        "status": "Printing",
        "paused": False,
        "layer": 10,
        "print_data": {
            "layer_count": 40,
            "used_material": 3.2,
            "print_time": "0:38:50.000000",
            "file_data": {"name": "cube.ctb", "path": "cube.ctb"},
        },
        "physical_state": {"z": 1.25, "curing": False},
    }
    payload.update(overrides)
    return PrinterStatus.from_dict(payload)


def test_printer_status_parses_odyssey_shape() -> None:
    status = _status()

    assert status.is_printing
    assert status.file_name == "cube.ctb"
    assert status.layer_count == 40
    assert status.progress == 0.25
    assert status.z == 1.25
    assert status.formatted_elapsed_print_time == "00:38:50"
    assert status.display_label() == "Printing"


def test_non_finite_numbers_from_json_are_treated_as_missing() -> None:
    payload = json.loads(
        '{"status": "Printing", "layer": NaN, '
        '"print_data": {"layer_count": Infinity, "print_time": NaN}}'
    )
    status = PrinterStatus.from_dict(payload)

    assert status.layer is None
    assert status.layer_count is None
    assert status.print_time == 0


def test_missing_layer_with_print_data_is_canceled() -> None:
    status = _status(status="Idle", layer=None)

    assert status.is_canceled
    assert status.display_label() == "Canceled"


def test_idle_with_final_layer_is_finished() -> None:
    status = _status(status="Idle", layer=40)

    assert not status.is_canceled
    assert status.display_label() == "Finished"


def test_transitional_labels() -> None:
    assert _status().display_label(transitional_cancel=True) == "Canceling"
    assert _status().display_label(transitional_pause=True) == "Pausing"
    assert _status(paused=True).display_label(transitional_pause=True) == "Paused"


def test_files_listing_decodes_print_time_forms() -> None:
    listing = FilesListing.from_dict(
        {
            "files": [
                {
                    "file_data": {"path": "a.ctb", "name": "a.ctb", "last_modified": 7},
                    "location_category": "Local",
                    "print_time": "00:38:50",
                },
                {
                    "file_data": {"path": "b.ctb", "name": "b.ctb"},
                    "print_time": 2330,
                },
            ],
            "dirs": [{"path": "sub", "name": "sub"}],
            "page_index": 0,
            "page_size": 20,
        }
    )

    assert [entry.print_time for entry in listing.files] == [2330, 2330]
    assert listing.files[0].as_dict()["print_time"] == "00:38:50"
    assert listing.files[0].file_data.last_modified == 7
    assert listing.dirs[0].location_category == "Local"


def test_file_metadata_formats_print_time() -> None:
    metadata = FileMetadata.from_dict(
        {"file_data": {"path": "a.ctb", "name": "a.ctb"}, "print_time": 2330.0}
    )

    assert metadata.formatted_print_time == "00:38:50"


def test_manual_result_accepts_json_text_and_empty_bodies() -> None:
    assert ManualResult.from_payload({"ok": False, "message": "busy"}).as_dict() == {
        "ok": False,
        "message": "busy",
    }
    assert ManualResult.from_payload({"result": "ok"}).ok is True
    assert ManualResult.from_payload("Moved").message == "Moved"
    assert ManualResult.from_payload(None).as_dict() == {"ok": True}
