"""Serve a checkout of the live board as static files for a local regression run."""

from __future__ import annotations

import threading
import time
from pathlib import Path
from urllib.parse import urlsplit

import httpx
import structlog
import uvicorn
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

logger = structlog.get_logger(__name__)

DEFAULT_PORT = 8765


def create_static_app(directory: str | Path) -> FastAPI:
    app = FastAPI(title="FDMS live board (static)")
    app.mount("/", StaticFiles(directory=str(directory), html=True), name="app")
    return app


class StaticAppServer:
    """uvicorn on a daemon thread; use as a context manager around a run."""

    def __init__(self, directory: str | Path, host: str = "127.0.0.1", port: int = DEFAULT_PORT):
        self.directory = Path(directory)
        self.host = host
        self.port = port
        self._server: uvicorn.Server | None = None
        self._thread: threading.Thread | None = None

    @classmethod
    def for_url(cls, directory: str | Path, app_url: str) -> "StaticAppServer":
        """Bind to the host and port the runner will navigate to."""
        parts = urlsplit(app_url)
        return cls(directory, host=parts.hostname or "127.0.0.1", port=parts.port or DEFAULT_PORT)

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}"

    def start(self, ready_timeout: float = 5.0) -> str:
        if not self.directory.is_dir():
            raise FileNotFoundError(f"App directory not found: {self.directory}")

        self._server = uvicorn.Server(
            uvicorn.Config(
                create_static_app(self.directory),
                host=self.host,
                port=self.port,
                log_level="warning",
                access_log=False,
            )
        )
        self._thread = threading.Thread(target=self._server.run, daemon=True)
        self._thread.start()

        deadline = time.monotonic() + ready_timeout
        with httpx.Client() as client:
            while time.monotonic() < deadline:
                try:
                    client.get(f"{self.base_url}/", timeout=1.0)
                    break
                except httpx.HTTPError:
                    time.sleep(0.05)
            else:
                self.stop()
                raise RuntimeError(f"static app server did not start on {self.base_url}")

        logger.info("Serving app", directory=str(self.directory), url=self.base_url)
        return self.base_url

    def stop(self) -> None:
        if self._server is not None:
            self._server.should_exit = True
        if self._thread is not None:
            self._thread.join(timeout=5)
        self._server = None
        self._thread = None

    def __enter__(self) -> "StaticAppServer":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()
