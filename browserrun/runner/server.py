"""WebDriver server lifecycle.

Starts the Selenium standalone server when the settings ask for a locally
managed server, waits until its status endpoint reports ready, and stops
it again once every work unit has finished.
"""

import logging
import subprocess
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Any, Callable, Optional

import requests

from ..errors import ServerStartError
from ..settings.schema import SeleniumSettings
from ..transport import StatusClient

LOGGER = logging.getLogger("browserrun.server")

STOP_TIMEOUT = 10.0


@dataclass
class ServerHandle:
    """A running server process owned by ServerLifecycleManager."""
    process: Any
    command: list[str]
    started_at: float = field(default_factory=time.time)
    log_file: Optional[IO] = None

    @property
    def running(self) -> bool:
        return self.process.poll() is None

    @property
    def pid(self) -> Optional[int]:
        return getattr(self.process, "pid", None)


class ServerLifecycleManager:
    """Owns at most one managed WebDriver server process."""

    def __init__(
        self,
        settings: SeleniumSettings,
        popen: Callable[..., Any] = subprocess.Popen,
        status_client: Optional[StatusClient] = None,
        java: str = "java",
    ):
        """Initialize the manager.

        Args:
            settings: Resolved selenium settings; ``managed`` decides whether
                ``start`` does anything at all.
            popen: Process factory (``subprocess.Popen`` compatible).
            status_client: Readiness checker; defaults to one for ``settings.base_url``.
            java: Java executable used to launch the server jar.
        """
        self.settings = settings
        self._popen = popen
        self._status_client = status_client
        self._java = java
        self._handle: Optional[ServerHandle] = None

    @property
    def managed(self) -> bool:
        return self.settings.managed

    @property
    def running(self) -> bool:
        return self._handle is not None and self._handle.running

    @property
    def handle(self) -> Optional[ServerHandle]:
        return self._handle

    def build_command(self) -> list[str]:
        """Java command line with ``cli_args`` applied.

        Keys starting with ``-`` are server options placed after the jar;
        every other key becomes a ``-Dkey=value`` JVM property.
        """
        properties: list[str] = []
        server_options: list[str] = []
        for key, value in self.settings.cli_args.items():
            if key.startswith("-"):
                server_options.append(key)
                if value is not True and value is not None:
                    server_options.append(str(value))
            else:
                properties.append(f"-D{key}={value}")

        return [
            self._java,
            *properties,
            "-jar",
            str(self.settings.server_path),
            "-port",
            str(self.settings.port),
            *server_options,
        ]

    def start(self) -> Optional[ServerHandle]:
        """Start the server and block until it is ready.

        A no-op when the server isn't managed locally (remote grid, or this
        process is a parallel child). Calling it while a server is already
        running returns the existing handle.

        Raises:
            ServerStartError: If the server can't be spawned or never becomes
                ready. Nothing is left running in that case.
        """
        if not self.managed:
            LOGGER.debug("WebDriver server not managed by this process; skipping start")
            return None

        if self._handle is not None:
            return self._handle

        server_path = self.settings.server_path
        if not server_path:
            raise ServerStartError("Selenium server_path is not set but start_process is enabled.")
        if not Path(server_path).is_file():
            raise ServerStartError(f"Selenium server jar not found: {server_path}")

        command = self.build_command()
        log_file = self._open_log()
        LOGGER.info("Starting Selenium server on port %s", self.settings.port)
        LOGGER.debug("Server command: %s", " ".join(command))

        try:
            process = self._popen(
                command,
                stdout=log_file if log_file else subprocess.DEVNULL,
                stderr=subprocess.STDOUT,
            )
        except OSError as e:
            if log_file:
                log_file.close()
            raise ServerStartError(f"Failed to launch Selenium server: {e}") from e

        handle = ServerHandle(process=process, command=command, log_file=log_file)
        client = self._status_client or StatusClient(self.settings.base_url)

        ready = client.wait_until_ready(
            self.settings.start_timeout,
            keep_waiting=lambda: handle.running,
        )
        if not ready:
            exit_code = process.poll()
            self._terminate(handle)
            if exit_code is not None:
                message = f"Selenium server exited with code {exit_code} before becoming ready."
            else:
                message = f"Selenium server did not become ready within {self.settings.start_timeout:g}s."
            raise ServerStartError(message, output=self._read_log())

        self._handle = handle
        self._log_build(client)
        LOGGER.info("Selenium server is up and running (pid %s)", handle.pid)
        return handle

    def stop(self) -> None:
        """Stop the server if this manager started it. Safe to call repeatedly."""
        handle, self._handle = self._handle, None
        if handle is None:
            return
        LOGGER.info("Stopping Selenium server")
        self._terminate(handle)

    def _terminate(self, handle: ServerHandle) -> None:
        try:
            if handle.running:
                handle.process.terminate()
                try:
                    handle.process.wait(timeout=STOP_TIMEOUT)
                except subprocess.TimeoutExpired:
                    LOGGER.warning("Selenium server did not exit after %ss; killing it", STOP_TIMEOUT)
                    handle.process.kill()
                    handle.process.wait()
        finally:
            if handle.log_file:
                handle.log_file.close()

    def _log_file_path(self) -> Optional[Path]:
        if not self.settings.log_path:
            return None
        path = Path(self.settings.log_path)
        # A bare folder gets the default file name
        if path.suffix == "":
            path = path / "selenium-debug.log"
        return path

    def _open_log(self) -> Optional[IO]:
        path = self._log_file_path()
        if path is None:
            return None
        path.parent.mkdir(parents=True, exist_ok=True)
        return open(path, "ab")

    def _read_log(self) -> str:
        path = self._log_file_path()
        if path is None:
            return ""
        try:
            return path.read_text(encoding="utf-8", errors="replace")[-4000:]
        except OSError:
            return ""

    def _log_build(self, client: StatusClient) -> None:
        try:
            status = client.get_status()
        except (requests.RequestException, ValueError) as e:
            LOGGER.debug("Could not read server status: %s", e)
            return
        value = status.get("value") if isinstance(status, dict) else None
        build = value.get("build") if isinstance(value, dict) else None
        if isinstance(build, dict) and build.get("version"):
            LOGGER.debug("Selenium server version %s", build["version"])
