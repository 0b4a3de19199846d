"""Tests for the NanoDLP adapter."""

import asyncio
from typing import Any

import pytest
import pytest_asyncio
from aiohttp import web

from resin_owl.adapters import NanoDlpClient
from resin_owl.core.protocols import BackendClient
from resin_owl.core.status import StatusCanonicalizer
from resin_owl.errors import UnexpectedResponse, Unsupported

PLATES = [
    {
        "PlateID": 7,
        "Path": "cube.zip",
        "LayersCount": 120,
        "PrintTime": "0:38:50",
        "TotalSolidArea": "12.5ml",
        "LayerThickness": 50,
        "ProfileName": "Grey Resin",
        "Preview": True,
    },
    {
        "PlateID": 8,
        "Path": "ring.zip",
        "LayersCount": 80,
        "Preview": False,
    },
    {
        "PlateID": 9,
        "Path": "broken-preview.zip",
        "LayersCount": 10,
        "Preview": True,
    },
]


@pytest_asyncio.fixture
async def nanodlp_server(unused_tcp_port_factory):
    state: dict[str, Any] = {
        "status": {
            "Printing": False,
            "Paused": False,
            "State": 0,
            "CurrentHeight": 6400 * 10,
            "Version": "5012",
            "Build": "2024-10-01",
            "Hostname": "nanodlp",
            "temp": "24.85°C",
            "mcu": 41.5,
            "FillAreas": [[1, 2, 3]],
        },
    }
    requests: list[tuple[str, str]] = []
    forms: list[dict[str, str]] = []

    async def status_handler(request: web.Request):
        requests.append((request.method, request.path))
        return web.json_response(state["status"])

    async def plates_handler(request: web.Request):
        requests.append((request.method, request.path))
        return web.json_response(PLATES)

    async def text_handler(request: web.Request):
        requests.append((request.method, request.path))
        return web.Response(text="Done")

    async def form_handler(request: web.Request):
        requests.append((request.method, request.path))
        forms.append(dict(await request.post()))
        return web.json_response({"ok": True})

    async def preview_handler(request: web.Request):
        requests.append((request.method, request.path))
        if request.match_info["plate"] == "9":
            return web.Response(status=404, text="missing")
        return web.Response(body=b"\x89PNG-preview", content_type="image/png")

    async def layer_handler(request: web.Request):
        requests.append((request.method, request.path))
        return web.Response(body=b"layer-" + request.match_info["layer"].encode())

    async def notification_handler(request: web.Request):
        requests.append((request.method, request.path))
        return web.json_response(
            [{"Timestamp": 1700000000, "Type": "warn", "Text": "Resin low"}]
        )

    async def profiles_handler(request: web.Request):
        requests.append((request.method, request.path))
        return web.json_response([{"ProfileID": 1, "Title": "Grey"}, "junk"])

    async def analytics_handler(request: web.Request):
        requests.append((request.method, request.path))
        return web.json_response([{"ID": 1, "T": 3, "V": 21.5}])

    async def analytic_value_handler(request: web.Request):
        requests.append((request.method, request.path))
        return web.Response(text="21.5")

    async def machine_handler(request: web.Request):
        requests.append((request.method, request.path))
        return web.json_response({"Name": "Athena", "ZAxisHeight": 200, "Email": "x"})

    app = web.Application()
    app.router.add_get("/status", status_handler)
    app.router.add_get("/plates/list/json", plates_handler)
    app.router.add_get("/static/plates/{plate}/3d.png", preview_handler)
    app.router.add_get("/static/plates/{plate}/{layer}.png", layer_handler)
    app.router.add_get("/notification", notification_handler)
    app.router.add_get("/profiles/json", profiles_handler)
    app.router.add_get("/analytic/data/{n}", analytics_handler)
    app.router.add_get("/analytic/value/{metric}", analytic_value_handler)
    app.router.add_get("/json/db/machine.json", machine_handler)
    app.router.add_post("/profile/add", form_handler)
    app.router.add_post("/profile/edit/{profile}", form_handler)
    for path in (
        "/printer/start/{plate}",
        "/printer/stop",
        "/printer/pause",
        "/printer/unpause",
        "/printer/force-stop",
        "/printer/temperature/{heater}/{celsius}",
        "/z-axis/move/{direction}/micron/{microns}",
        "/z-axis/top",
        "/z-axis/bottom",
        "/z-axis/calibrate",
        "/plate/delete/{plate}",
        "/notification/disable/{ts}",
        "/profile/delete/{profile}",
        "/update",
    ):
        app.router.add_get(path, text_handler)

    runner = web.AppRunner(app)
    await runner.setup()

    port = unused_tcp_port_factory()
    site = web.TCPSite(runner, "127.0.0.1", port)
    await site.start()

    class _Server:
        def __init__(self, server_port: int):
            self._port = server_port
            self.state = state
            self.requests = requests
            self.forms = forms

        def make_url(self, path: str = "/") -> str:
            if not path.startswith("/"):
                path = "/" + path
            return f"http://127.0.0.1:{self._port}{path}"

        def set_status(self, **fields: Any) -> None:
            self.state["status"].update(fields)

        def paths(self) -> list[str]:
            return [path for _, path in self.requests]

    try:
        yield _Server(port)
    finally:
        await runner.cleanup()


@pytest_asyncio.fixture
async def client(nanodlp_server):
    nanodlp = NanoDlpClient(nanodlp_server.make_url("/"), poll_interval=0.01)
    try:
        yield nanodlp
    finally:
        await nanodlp.aclose()


def test_nanodlp_client_satisfies_protocol() -> None:
    assert isinstance(NanoDlpClient("http://localhost"), BackendClient)


# ============================================================================
# Status
# ============================================================================


@pytest.mark.asyncio
async def test_status_is_mapped_to_odyssey_shape(client, nanodlp_server) -> None:
    nanodlp_server.set_status(
        Printing=True, State=5, LayerID=30, LayersCount=120, PlateID=7
    )

    status = await client.get_status()

    assert status["status"] == "Printing"
    assert status["layer"] == 30
    assert status["physical_state"]["z"] == 10.0
    assert status["print_data"]["file_data"]["path"] == "cube.zip"
    assert status["print_data"]["print_time"] == 2330
    assert status["cancel_latched"] is False
    assert "/plates/list/json" in nanodlp_server.paths()


@pytest.mark.asyncio
async def test_cancel_latch_survives_idle_polls(client, nanodlp_server) -> None:
    nanodlp_server.set_status(Printing=True, State=5, LayerID=30, LayersCount=120)
    await client.get_status()

    nanodlp_server.set_status(Printing=False, State=4)
    canceling = await client.get_status()

    nanodlp_server.set_status(State=0, LayerID=None, LayersCount=None)
    idle = await client.get_status()

    nanodlp_server.set_status(State=1, Printing=True)
    restarted = await client.get_status()

    assert canceling["status"] == "Canceling"
    assert idle["status"] == "Idle"
    assert idle["cancel_latched"] is True
    assert idle["layer"] is None
    assert restarted["status"] == "Printing"
    assert restarted["cancel_latched"] is False


@pytest.mark.asyncio
async def test_finished_job_reports_final_layer(client, nanodlp_server) -> None:
    nanodlp_server.set_status(
        State=0, LayersCount=120, file={"Path": "cube.zip", "LayersCount": 120}
    )

    status = await client.get_status()

    assert status["status"] == "Idle"
    assert status["finished"] is True
    assert status["layer"] == 120


@pytest.mark.asyncio
async def test_injected_canonicalizer_is_used(nanodlp_server) -> None:
    canonicalizer = StatusCanonicalizer()
    nanodlp_server.set_status(State=4)

    async with NanoDlpClient(
        nanodlp_server.make_url("/"), canonicalizer=canonicalizer
    ) as nanodlp:
        await nanodlp.get_status()

    assert canonicalizer.cancel_latched is True


@pytest.mark.asyncio
async def test_status_stream_polls_in_order(client, nanodlp_server) -> None:
    received: list[dict[str, Any]] = []

    async def consume() -> None:
        async for snapshot in client.status_stream(interval=0.01):
            received.append(snapshot)
            if len(received) == 1:
                nanodlp_server.set_status(Printing=True, State=5)
            if len(received) == 2:
                break

    await asyncio.wait_for(consume(), timeout=2.0)

    assert [snapshot["status"] for snapshot in received] == ["Idle", "Printing"]


@pytest.mark.asyncio
async def test_config_and_version(client) -> None:
    config = await client.get_config()
    version = await client.get_backend_version()

    assert config["general"]["hostname"] == "nanodlp"
    assert config["advanced"]["nanodlp"]["build"] == "2024-10-01"
    assert config["vendor"] == {"machine_name": "Athena", "z_axis_height": 200}
    assert version == "NanoDLP 5012 (build 2024-10-01)"


@pytest.mark.asyncio
async def test_temperatures_strip_units(client) -> None:
    assert await client.get_temperatures() == {"vat": 24.85, "mcu": 41.5}


# ============================================================================
# Files
# ============================================================================


@pytest.mark.asyncio
async def test_list_items_pages_plates(client) -> None:
    first = await client.list_items("Local", 2, 0)
    second = await client.list_items("Local", 2, 1)

    assert [e["file_data"]["path"] for e in first["files"]] == ["cube.zip", "ring.zip"]
    assert [e["file_data"]["path"] for e in second["files"]] == ["broken-preview.zip"]
    assert first["dirs"] == []
    entry = first["files"][0]
    assert entry["print_time"] == 2330
    assert entry["used_material"] == 12.5
    assert entry["layer_height"] == 0.05
    assert entry["material_name"] == "Grey Resin"


@pytest.mark.asyncio
async def test_usb_is_never_available(client) -> None:
    assert await client.usb_available() is False


@pytest.mark.asyncio
async def test_metadata_for_unknown_file_is_minimal(client) -> None:
    metadata = await client.get_file_metadata("Local", "nope.zip")

    assert metadata["file_data"]["path"] == "nope.zip"


@pytest.mark.asyncio
async def test_thumbnail_uses_preview_when_available(client) -> None:
    assert await client.get_file_thumbnail("Local", "cube.zip") == b"\x89PNG-preview"


@pytest.mark.asyncio
@pytest.mark.parametrize("file_path", ["ring.zip", "broken-preview.zip", "nope.zip"])
async def test_thumbnail_falls_back_to_placeholder(client, file_path) -> None:
    thumbnail = await client.get_file_thumbnail("Local", file_path, "Large")

    assert thumbnail.startswith(b"\x89PNG\r\n\x1a\n")


@pytest.mark.asyncio
async def test_delete_and_start_resolve_plate_ids(client, nanodlp_server) -> None:
    result = await client.delete_file("Local", "/ring.zip")
    await client.start_print("Local", "cube.zip")

    assert result == {"ok": True, "message": "Done"}
    assert "/plate/delete/8" in nanodlp_server.paths()
    assert "/printer/start/7" in nanodlp_server.paths()


@pytest.mark.asyncio
async def test_delete_unknown_plate_raises(client) -> None:
    with pytest.raises(UnexpectedResponse):
        await client.delete_file("Local", "nope.zip")


@pytest.mark.asyncio
async def test_plate_layer_image(client) -> None:
    assert await client.get_plate_layer_image(7, 12) == b"layer-12"


# ============================================================================
# Motion
# ============================================================================


@pytest.mark.asyncio
async def test_absolute_move_is_sent_as_relative_microns(client, nanodlp_server) -> None:
    await client.move(12.5)
    await client.move(9.0)

    moves = [p for p in nanodlp_server.paths() if p.startswith("/z-axis/move")]
    assert moves == ["/z-axis/move/up/micron/2500", "/z-axis/move/down/micron/1000"]


@pytest.mark.asyncio
async def test_zero_move_is_a_no_op(client, nanodlp_server) -> None:
    result = await client.move(10.0)

    assert result == {"ok": True, "message": "no-op"}
    assert not [p for p in nanodlp_server.paths() if p.startswith("/z-axis/move")]


@pytest.mark.asyncio
async def test_move_fails_without_height(client, nanodlp_server) -> None:
    nanodlp_server.set_status(CurrentHeight=None)

    with pytest.raises(UnexpectedResponse):
        await client.move(5.0)


@pytest.mark.asyncio
async def test_axis_shortcuts(client, nanodlp_server) -> None:
    assert await client.can_move_to_top() is True
    assert await client.can_move_to_floor() is True

    await client.move_to_top()
    await client.move_to_floor()
    await client.manual_home()
    await client.emergency_stop()

    assert nanodlp_server.paths()[-4:] == [
        "/z-axis/top",
        "/z-axis/bottom",
        "/z-axis/calibrate",
        "/printer/force-stop",
    ]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "operation,args",
    [("manual_cure", (True,)), ("manual_command", ("G28",)), ("display_test", ("Grid",))],
)
async def test_odyssey_only_operations_are_unsupported(client, operation, args) -> None:
    with pytest.raises(Unsupported):
        await getattr(client, operation)(*args)


# ============================================================================
# Maintenance
# ============================================================================


@pytest.mark.asyncio
async def test_print_controls(client, nanodlp_server) -> None:
    await client.pause_print()
    await client.resume_print()
    await client.cancel_print()

    assert nanodlp_server.paths()[-3:] == [
        "/printer/pause",
        "/printer/unpause",
        "/printer/stop",
    ]


@pytest.mark.asyncio
async def test_notifications(client, nanodlp_server) -> None:
    notifications = await client.get_notifications()
    await client.disable_notification(1700000000)

    assert notifications[0]["Text"] == "Resin low"
    assert nanodlp_server.paths()[-1] == "/notification/disable/1700000000"


@pytest.mark.asyncio
async def test_profiles(client, nanodlp_server) -> None:
    profiles = await client.list_profiles()
    await client.create_profile({"Title": "Clear", "Depth": 50, "Heated": True})
    await client.edit_profile(1, {"Title": "Grey v2", "Notes": None})
    await client.delete_profile(1)

    assert profiles == [{"ProfileID": 1, "Title": "Grey"}]
    assert nanodlp_server.forms == [
        {"Title": "Clear", "Depth": "50", "Heated": "1"},
        {"Title": "Grey v2"},
    ]
    assert "/profile/edit/1" in nanodlp_server.paths()
    assert nanodlp_server.paths()[-1] == "/profile/delete/1"


@pytest.mark.asyncio
async def test_temperature_analytics_and_update(client, nanodlp_server) -> None:
    await client.set_vat_temperature(30.4)
    await client.set_chamber_temperature(-2)
    analytics = await client.get_analytics(5)
    value = await client.get_analytic_value(3)
    await client.update_backend()

    assert "/printer/temperature/vat/30" in nanodlp_server.paths()
    assert "/printer/temperature/chamber/0" in nanodlp_server.paths()
    assert "/analytic/data/5" in nanodlp_server.paths()
    assert analytics == [{"ID": 1, "T": 3, "V": 21.5}]
    assert value == 21.5
    assert nanodlp_server.paths()[-1] == "/update"
