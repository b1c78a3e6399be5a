"""Service lifecycle: open the store, bind the listener, serve, stop.

Usage:
    runner = ServiceRunner(settings, encryption_key)
    host, port = runner.start()
    ...
    runner.wait()  # blocks until stop(), a signal or a listener failure

``wait()`` returns ``None`` after ``stop()`` and raises the first other stop
reason it observed. In every case the HTTP server has been shut down and the
store closed when it returns.
"""

import signal
import socket
import threading
import time
from typing import Optional, Tuple

import uvicorn

from infrastructure.configuration import Settings
from infrastructure.configuration.infrastructure.server import SUPPORTED_PROTOCOLS
from infrastructure.logging import get_module_logger
from infrastructure.persistence import KeyValueStore, open_store
from server.server import create_app

logger = get_module_logger()

STARTUP_TIMEOUT_SECONDS = 10.0
_POLL_INTERVAL_SECONDS = 0.05


class SignalReceived(Exception):
    """The process received SIGINT or SIGTERM."""

    def __init__(self, signum: int):
        self.signum = signum
        super().__init__(f"caught signal {signal.Signals(signum).name!r}")


class ListenerError(Exception):
    """The HTTP listener failed or stopped on its own."""


def parse_address(address: str) -> Tuple[str, int]:
    """Split ``host:port``, ``:port`` or ``[v6]:port`` into host and port.

    Raises:
        ValueError: the address has no port, too many colons or a bad port.
    """
    host, sep, port = address.rpartition(":")
    if not sep:
        raise ValueError(f"address {address}: missing port in address")

    if host.startswith("["):
        if not host.endswith("]"):
            raise ValueError(f"address {address}: missing ']' in address")
        host = host[1:-1]
    elif ":" in host:
        raise ValueError(f"address {address}: too many colons in address")

    if port.isdigit():
        number = int(port)
    else:
        try:
            number = socket.getservbyname(port, "tcp")
        except OSError as e:
            raise ValueError(f"address {address}: unknown port") from e

    if not 0 <= number <= 65535:
        raise ValueError(f"address {address}: invalid port")
    return host, number


def bind_listener(protocol: str, address: str) -> socket.socket:
    """Bind and listen on address for protocol (tcp4, tcp6 or tcp)."""
    protocol = protocol.lower()
    if protocol not in SUPPORTED_PROTOCOLS:
        raise ValueError(f"unsupported protocol {protocol!r}")

    host, port = parse_address(address)

    if protocol == "tcp4":
        return socket.create_server((host or "0.0.0.0", port), family=socket.AF_INET)
    if protocol == "tcp6":
        return socket.create_server((host or "::", port), family=socket.AF_INET6)

    if not host:
        if socket.has_dualstack_ipv6():
            return socket.create_server(
                ("::", port), family=socket.AF_INET6, dualstack_ipv6=True
            )
        return socket.create_server(("0.0.0.0", port), family=socket.AF_INET)

    family, _, _, _, sockaddr = socket.getaddrinfo(
        host, port, socket.AF_UNSPEC, socket.SOCK_STREAM
    )[0]
    return socket.create_server(sockaddr[:2], family=family)


class ServiceRunner:
    """Runs the persister HTTP service on a background thread.

    Args:
        settings: Settings instance providing protocol, address, file and limits.
        encryption_key: Key for the persistence file. Defaults to the key
            resolved from the configured environment variable.
    """

    def __init__(self, settings: Settings, encryption_key: Optional[str] = None):
        self.settings = settings
        self.encryption_key = encryption_key
        self.store: Optional[KeyValueStore] = None

        self._server: Optional[uvicorn.Server] = None
        self._socket: Optional[socket.socket] = None
        self._thread: Optional[threading.Thread] = None

        self._lock = threading.Lock()
        self._stopped = threading.Event()
        self._reason: Optional[BaseException] = None
        self._shut_down = False
        self._address: Optional[Tuple[str, int]] = None

    @property
    def address(self) -> Optional[Tuple[str, int]]:
        return self._address

    def start(self) -> Tuple[str, int]:
        """Open the store, bind the listener and start serving.

        Returns:
            The (host, port) the listener is bound to.
        """
        server_settings = self.settings.server
        self.store = open_store(self.settings, encryption_key=self.encryption_key)

        try:
            self._socket = bind_listener(server_settings.PROTOCOL, server_settings.ADDRESS)
        except Exception:
            self.store.close()
            raise

        self._address = self._socket.getsockname()[:2]
        app = create_app(self.store, self.settings)

        config = uvicorn.Config(
            app,
            log_config=None,
            access_log=False,
            timeout_keep_alive=int(server_settings.IDLE_TIMEOUT_SECONDS),
            timeout_graceful_shutdown=int(server_settings.SHUTDOWN_TIMEOUT_SECONDS),
        )
        self._server = uvicorn.Server(config)
        self._thread = threading.Thread(
            target=self._serve, name="persister-http", daemon=True
        )
        self._thread.start()

        deadline = time.monotonic() + STARTUP_TIMEOUT_SECONDS
        while not self._server.started and not self._stopped.is_set():
            if time.monotonic() > deadline:
                self._finish(ListenerError("timed out waiting for the listener"))
                break
            time.sleep(_POLL_INTERVAL_SECONDS)

        host, port = self._address
        logger.info(
            "service_listening",
            protocol=server_settings.PROTOCOL,
            host=host,
            port=port,
            summary=f"Serving {server_settings.PROTOCOL} http requests on {host}:{port}",
        )
        return self._address

    def stop(self) -> None:
        """Request a clean stop. wait() then returns None unless another reason came first."""
        self._finish(None)

    def wait(self) -> None:
        """Block until the service stops, then shut it down.

        Raises:
            SignalReceived: SIGINT or SIGTERM arrived first.
            ListenerError: the listener failed first.
        """
        previous = self._install_signal_handlers()
        try:
            while not self._stopped.wait(_POLL_INTERVAL_SECONDS):
                pass
        finally:
            self._restore_signal_handlers(previous)
            self._shutdown()

        if self._reason is not None:
            raise self._reason

    def _finish(self, reason: Optional[BaseException]) -> None:
        with self._lock:
            if self._stopped.is_set():
                return
            self._reason = reason
            self._stopped.set()

    def _serve(self) -> None:
        assert self._server is not None and self._socket is not None
        try:
            self._server.run(sockets=[self._socket])
        except Exception as e:  # pylint: disable=broad-except
            logger.error("listener_failed", error=str(e))
            self._finish(ListenerError(str(e)))
            return
        self._finish(ListenerError("listener stopped unexpectedly"))

    def _on_signal(self, signum, _frame) -> None:
        logger.warning("signal_received", signal=signal.Signals(signum).name)
        self._finish(SignalReceived(signum))

    def _install_signal_handlers(self) -> dict:
        if threading.current_thread() is not threading.main_thread():
            return {}
        previous = {}
        for signum in (signal.SIGINT, signal.SIGTERM):
            previous[signum] = signal.signal(signum, self._on_signal)
        return previous

    def _restore_signal_handlers(self, previous: dict) -> None:
        for signum, handler in previous.items():
            signal.signal(signum, handler)

    def _shutdown(self) -> None:
        with self._lock:
            if self._shut_down:
                return
            self._shut_down = True

        if self._server is not None:
            self._server.should_exit = True
        if self._thread is not None:
            self._thread.join(timeout=self.settings.server.SHUTDOWN_TIMEOUT_SECONDS)
        if self._socket is not None:
            self._socket.close()
        if self.store is not None:
            self.store.close()

        reason = self._reason
        logger.info(
            "service_stopped",
            reason=str(reason) if reason is not None else None,
        )


def run_service(settings: Settings, encryption_key: Optional[str] = None) -> None:
    """Start the service and block until it stops.

    Raises:
        SignalReceived, ListenerError: the service stopped for that reason.
    """
    runner = ServiceRunner(settings, encryption_key)
    runner.start()
    runner.wait()
