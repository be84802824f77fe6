from __future__ import annotations

import socket
from pathlib import Path

import httpx
import pytest

from formation_regression.app_server import DEFAULT_PORT, StaticAppServer


def _pick_free_port() -> int:
    s = socket.socket()
    s.bind(("127.0.0.1", 0))
    port = int(s.getsockname()[1])
    s.close()
    return port


def test_serves_index_and_assets(tmp_path: Path) -> None:
    (tmp_path / "index.html").write_text("<div id='liveBody'>live board</div>", encoding="utf-8")
    (tmp_path / "js").mkdir()
    (tmp_path / "js" / "app.js").write_text("console.log('app');", encoding="utf-8")

    with StaticAppServer(tmp_path, port=_pick_free_port()) as server:
        index = httpx.get(f"{server.base_url}/", timeout=5.0)
        script = httpx.get(f"{server.base_url}/js/app.js", timeout=5.0)
        missing = httpx.get(f"{server.base_url}/nope.js", timeout=5.0)

    assert index.status_code == 200
    assert "liveBody" in index.text
    assert script.status_code == 200
    assert "console.log" in script.text
    assert missing.status_code == 404


def test_for_url_binds_to_app_url() -> None:
    server = StaticAppServer.for_url("/srv/app", "http://localhost:8123/")
    assert server.host == "localhost"
    assert server.port == 8123

    server = StaticAppServer.for_url("/srv/app", "http://127.0.0.1/")
    assert server.port == DEFAULT_PORT


def test_missing_directory_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        StaticAppServer(tmp_path / "absent", port=_pick_free_port()).start()
