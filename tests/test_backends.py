"""Tests for backend selection and the application backend handle."""

from pathlib import Path

import pytest

from resin_owl.adapters import NanoDlpClient, OdysseyClient
from resin_owl.backends import BackendContext, create_backend_client
from resin_owl.config import load_config


def _config(tmp_path: Path, body: str):
    config_path = tmp_path / "resin-owl.cfg"
    config_path.write_text(body, encoding="utf-8")
    return load_config(config_path)


def test_default_config_selects_odyssey(tmp_path: Path) -> None:
    config = load_config(tmp_path / "missing.cfg")

    client = create_backend_client(config)

    assert isinstance(client, OdysseyClient)
    assert client.base_url == "http://localhost:12357"


def test_nanodlp_kind_selects_nanodlp(tmp_path: Path) -> None:
    config = _config(
        tmp_path,
        "[backend]\nkind = nanodlp\nurl = http://10.0.0.5/\n"
        "[status]\npoll_interval_seconds = 1.5\n",
    )

    client = create_backend_client(config)

    assert isinstance(client, NanoDlpClient)
    assert client.base_url == "http://10.0.0.5"
    assert client.poll_interval == 1.5


def test_unknown_kind_is_rejected(tmp_path: Path) -> None:
    config = _config(tmp_path, "[backend]\nkind = octoprint\n")

    with pytest.raises(ValueError, match="octoprint"):
        create_backend_client(config)


def test_context_shares_its_canonicalizer_with_nanodlp(tmp_path: Path) -> None:
    config = _config(tmp_path, "[backend]\nkind = nanodlp\n")

    context = BackendContext.from_config(config)

    assert context.kind == "nanodlp"
    assert isinstance(context.client, NanoDlpClient)
    assert context.client.canonicalizer is context.canonicalizer


def test_separate_contexts_do_not_share_state(tmp_path: Path) -> None:
    config = _config(tmp_path, "[backend]\nkind = nanodlp\n")

    first = BackendContext.from_config(config)
    second = BackendContext.from_config(config)

    assert first.canonicalizer is not second.canonicalizer
    assert first.client is not second.client


@pytest.mark.asyncio
async def test_context_closes_client(tmp_path: Path) -> None:
    config = load_config(tmp_path / "missing.cfg")

    async with BackendContext.from_config(config) as context:
        client = context.client
        await client._http._ensure_session()

    assert client._http._session is None
