"""
Callback listener lifecycle

Bind the webhook port up front, then serve the FastAPI app with uvicorn in a
background thread. ``stop()`` drains in-flight requests for at most
``shutdown_timeout`` seconds and releases the port before returning.
"""

import socket
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import uvicorn

from .exceptions import ListenerBindError
from .webhook_app import MessageConsumer, create_app
from .webhook_config import WebhookConfig
from .webhook_logger import get_webhook_logger

logger = get_webhook_logger()


@dataclass
class ListenerHandle:
    """Running listener: bound port plus an idempotent stop"""

    port: int
    host: str
    stop: Callable[[], None] = field(repr=False)

    def __enter__(self) -> "ListenerHandle":
        return self

    def __exit__(self, *args: Any) -> None:
        self.stop()


class CallbackListener:
    """One webhook listener for one account"""

    def __init__(self, config: WebhookConfig, on_message: MessageConsumer):
        self.config = config
        self.app = create_app(config, on_message)
        self._socket: socket.socket | None = None
        self._server: uvicorn.Server | None = None
        self._thread: threading.Thread | None = None
        self._port: int | None = None
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> ListenerHandle:
        """
        Bind the port and start serving

        Raises:
            ListenerBindError: port unavailable or server failed to start
        """
        with self._lock:
            if self._thread is not None:
                raise ListenerBindError("listener already started", port=self.config.port)

            sock = self._bind()
            port = sock.getsockname()[1]
            self._port = port

            server = uvicorn.Server(
                uvicorn.Config(
                    self.app,
                    log_config=None,
                    access_log=False,
                    lifespan="on",
                    timeout_graceful_shutdown=max(1, round(self.config.shutdown_timeout)),
                )
            )
            thread = threading.Thread(
                target=server.run,
                kwargs={"sockets": [sock]},
                name=f"wxbridge-listener-{port}",
                daemon=True,
            )
            self._socket, self._server, self._thread = sock, server, thread
            thread.start()

            deadline = time.monotonic() + self.config.startup_timeout
            while not server.started:
                if not thread.is_alive() or time.monotonic() > deadline:
                    self._shutdown()
                    raise ListenerBindError(
                        f"listener on port {port} failed to start", port=port
                    )
                time.sleep(0.01)

        logger.info(
            "listener_started",
            host=self.config.host,
            port=port,
            webhook_path=self.config.webhook_path,
        )
        return ListenerHandle(port=port, host=self.config.host, stop=self.stop)

    def stop(self) -> None:
        """Stop serving and release the port; safe to call more than once"""
        with self._lock:
            if self._thread is None:
                return
            self._shutdown()
        logger.info("listener_stopped", port=self._port)

    def _bind(self) -> socket.socket:
        # listen() right after bind so a second listener on the same port fails here
        sock: socket.socket | None = None
        try:
            family, socktype, proto, _, address = socket.getaddrinfo(
                self.config.host,
                self.config.port,
                type=socket.SOCK_STREAM,
                flags=socket.AI_PASSIVE,
            )[0]
            sock = socket.socket(family, socktype, proto)
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind(address)
            sock.listen(2048)
        except OSError as e:
            if sock is not None:
                sock.close()
            logger.error("listener_bind_failed", host=self.config.host, port=self.config.port, error=str(e))
            raise ListenerBindError(
                f"cannot bind {self.config.host}:{self.config.port}: {e.strerror or e}",
                port=self.config.port,
            ) from e
        return sock

    def _shutdown(self) -> None:
        server, thread, sock = self._server, self._thread, self._socket
        if server is not None:
            server.should_exit = True
        if thread is not None:
            thread.join(self.config.shutdown_timeout + 1)
            if thread.is_alive() and server is not None:
                logger.warning("listener_force_exit", timeout=self.config.shutdown_timeout)
                server.force_exit = True
                thread.join(1)
        if sock is not None:
            sock.close()
        self._server = self._thread = self._socket = None


def start_callback_listener(config: WebhookConfig, on_message: MessageConsumer) -> ListenerHandle:
    """
    Start a callback listener

    Args:
        config: listener configuration (port 0 picks a free port)
        on_message: consumer invoked once per message event

    Returns:
        ListenerHandle with the bound port and ``stop()``

    Raises:
        ConfigurationError: no api_key configured
        ListenerBindError: port already in use
    """
    return CallbackListener(config, on_message).start()
