"""Background hosting for capability servers.

Each server runs its FastMCP streamable-HTTP app under uvicorn in its own
daemon thread, with its own event loop, so sibling agents can work on
delegated tasks at the same time.
"""

from __future__ import annotations

import socket
import threading
import time
from typing import TYPE_CHECKING, Protocol

import uvicorn

from agentswarm.errors import ServerStartError
from agentswarm.logging import get_logger
from agentswarm.mcp.handoff import LOCALHOST, ServerEndpoint

if TYPE_CHECKING:
    from agentswarm.mcp.server import CapabilityServer

log = get_logger("mcp.hosting")


def find_free_port(host: str = LOCALHOST) -> int:
    """Ask the OS for an unused TCP port."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind((host, 0))
        return sock.getsockname()[1]


class ServerHandle(Protocol):
    """A started capability server that can be stopped."""

    endpoint: ServerEndpoint

    def start(self) -> None: ...

    def wait_started(self, timeout: float = 10.0) -> None: ...

    def stop(self, timeout: float = 5.0) -> None: ...


class CapabilityServerThread(threading.Thread):
    """Runs one CapabilityServer on ``endpoint`` until stopped."""

    def __init__(self, server: CapabilityServer, endpoint: ServerEndpoint) -> None:
        super().__init__(name=f"capability-{endpoint.agent}", daemon=True)
        self.server = server
        self.endpoint = endpoint
        self.error: BaseException | None = None

        app = server.build_app()
        config = uvicorn.Config(
            app.streamable_http_app(),
            host=endpoint.host,
            port=endpoint.port,
            log_level="warning",
            access_log=False,
        )
        self._uvicorn = uvicorn.Server(config)

    def run(self) -> None:
        try:
            self._uvicorn.run()
        except BaseException as e:
            self.error = e
            log.error("Capability server for %s crashed: %s", self.endpoint.agent, e)

    def wait_started(self, timeout: float = 10.0) -> None:
        """Block until uvicorn accepts connections.

        Raises:
            ServerStartError: If the thread died or the timeout expired.
        """
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if self._uvicorn.started:
                log.info("Capability server for %s listening on %s",
                         self.endpoint.agent, self.endpoint.url)
                return
            if not self.is_alive():
                break
            time.sleep(0.05)

        detail = f": {self.error}" if self.error else ""
        if not self.is_alive() and self.error is None:
            detail = ": server exited during startup"
        raise ServerStartError(
            f"Capability server for '{self.endpoint.agent}' failed to start on "
            f"{self.endpoint.url}{detail}"
        )

    def stop(self, timeout: float = 5.0) -> None:
        self._uvicorn.should_exit = True
        if self.is_alive():
            self.join(timeout)
        log.debug("Capability server for %s stopped", self.endpoint.agent)


def start_server_thread(server: CapabilityServer, endpoint: ServerEndpoint) -> CapabilityServerThread:
    """Start ``server`` in the background and wait until it is listening."""
    thread = CapabilityServerThread(server, endpoint)
    thread.start()
    thread.wait_started()
    return thread
