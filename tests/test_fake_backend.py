"""Tests for the in-memory backend double."""

import pytest

from resin_owl.adapters import FakeBackendClient
from resin_owl.core.models import PrinterStatus
from resin_owl.core.protocols import BackendClient
from resin_owl.errors import Unsupported

FILES = [
    {"file_data": {"path": "a.ctb", "name": "a.ctb"}, "print_time": 60},
    {"file_data": {"path": "b.ctb", "name": "b.ctb"}, "print_time": 120},
]


def test_fake_satisfies_protocol() -> None:
    assert isinstance(FakeBackendClient(), BackendClient)


@pytest.mark.asyncio
async def test_simulated_job_follows_lifecycle_calls() -> None:
    client = FakeBackendClient(files=FILES)

    assert (await client.get_status())["status"] == "Idle"

    await client.start_print("Local", "a.ctb")
    printing = PrinterStatus.from_dict(await client.get_status())
    await client.pause_print()
    paused = PrinterStatus.from_dict(await client.get_status())
    await client.cancel_print()
    canceled = PrinterStatus.from_dict(await client.get_status())

    assert printing.is_printing and printing.file_name == "a.ctb"
    assert paused.display_label() == "Paused"
    assert canceled.is_canceled
    assert canceled.cancel_latched


@pytest.mark.asyncio
async def test_files_paging_and_delete() -> None:
    client = FakeBackendClient(files=FILES)

    page = await client.list_items("Local", 1, 1)
    await client.delete_file("Local", "a.ctb")
    remaining = await client.list_items("Local", 10, 0)

    assert [f["file_data"]["path"] for f in page["files"]] == ["b.ctb"]
    assert [f["file_data"]["path"] for f in remaining["files"]] == ["b.ctb"]
    assert client.called("delete_file") == [("Local", "a.ctb")]


@pytest.mark.asyncio
async def test_unsupported_operations_and_probes() -> None:
    client = FakeBackendClient(unsupported=["move_to_top"])

    assert await client.can_move_to_top() is False
    assert await client.can_move_to_floor() is True
    with pytest.raises(Unsupported):
        await client.move_to_top()


@pytest.mark.asyncio
async def test_relative_moves_and_profiles() -> None:
    client = FakeBackendClient(z=2.0)

    await client.move_delta(1.5)
    await client.create_profile({"Title": "Grey"})
    await client.edit_profile(1, {"Depth": 50})

    assert client.z == 3.5
    assert await client.list_profiles() == [{"ProfileID": 1, "Title": "Grey", "Depth": 50}]
