"""Process entrypoint: bind the listener, serve, and drain on faults or signals."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import socket
import sys
from collections.abc import Iterator

import uvicorn
from fastapi import FastAPI

from blogapi.core.config import Settings, get_settings
from blogapi.core.errors import AppError
from blogapi.core.logging import AppLogger, configure_logging
from blogapi.core.monitor import EXIT_FAULT, UNCAUGHT_EXCEPTION, FaultMonitor

logger = logging.getLogger("blogapi.server")

FORCE_CLOSE_GRACE_SECONDS = 1.0


class ListenerBindError(AppError):
    """The listening socket could not be bound; the process exits without draining."""

    def __init__(self, host: str, port: int, cause: OSError) -> None:
        super().__init__(
            500,
            f"Unable to listen on {host}:{port}: {cause.strerror or cause}",
            operational=False,
        )
        self.__cause__ = cause


def bind_socket(host: str, port: int) -> socket.socket:
    """Bind and return a listening TCP socket, raising ListenerBindError on failure."""
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
        sock.listen(2048)
        sock.setblocking(False)
    except OSError as exc:
        sock.close()
        raise ListenerBindError(host, port, exc) from exc
    return sock


class _ManagedServer(uvicorn.Server):
    """uvicorn server whose signals belong to the fault monitor."""

    @contextlib.contextmanager
    def capture_signals(self) -> Iterator[None]:
        yield


class UvicornListener:
    """Adapts a running uvicorn server to the monitor's listener interface."""

    def __init__(self, server: uvicorn.Server, sock: socket.socket) -> None:
        self.server = server
        self.sock = sock
        self.serve_task: asyncio.Task[None] | None = None

    async def start(self) -> bool:
        """Start serving on the bound socket; False when startup did not complete."""
        self.serve_task = asyncio.create_task(
            self.server.serve(sockets=[self.sock]),
            name="uvicorn-serve",
        )
        while not self.server.started:
            if self.serve_task.done():
                return False
            await asyncio.sleep(0.05)
        return True

    async def close(self) -> None:
        self.server.should_exit = True
        if self.serve_task is not None:
            await asyncio.shield(self.serve_task)

    async def force_close(self) -> None:
        self.server.force_exit = True
        if self.serve_task is None or self.serve_task.done():
            return
        try:
            await asyncio.wait_for(asyncio.shield(self.serve_task), FORCE_CLOSE_GRACE_SECONDS)
        except asyncio.TimeoutError:
            self.serve_task.cancel()


def build_server(application: FastAPI, settings: Settings) -> _ManagedServer:
    config = uvicorn.Config(
        application,
        log_config=None,
        access_log=False,
        lifespan="on",
        timeout_graceful_shutdown=settings.drain_timeout_seconds,
    )
    return _ManagedServer(config)


async def serve(settings: Settings | None = None, *, application: FastAPI | None = None) -> int:
    """Run the service until it drains and return the process exit code."""

    settings = settings or get_settings()
    configure_logging(
        settings.log_level,
        log_dir=settings.log_dir,
        retention_days=settings.log_retention_days,
    )
    app_logger = AppLogger()

    logger.info("Configuring %s server...", settings.environment)

    try:
        sock = bind_socket(settings.host, settings.port)
    except ListenerBindError as exc:
        app_logger.log_fault(exc, "listen")
        return EXIT_FAULT

    if application is None:
        from blogapi.main import create_app

        application = create_app(settings, app_logger=app_logger)

    monitor = FaultMonitor(app_logger, drain_timeout=settings.drain_timeout_seconds)
    application.state.fault_monitor = monitor
    listener = UvicornListener(build_server(application, settings), sock)

    try:
        if not await listener.start():
            logger.error("Server failed to start")
            return EXIT_FAULT

        monitor.attach(listener)
        logger.info("Server is successfully alive on PORT: %s", sock.getsockname()[1])

        stopped = asyncio.ensure_future(monitor.wait_stopped())
        assert listener.serve_task is not None
        await asyncio.wait({stopped, listener.serve_task}, return_when=asyncio.FIRST_COMPLETED)
        if not stopped.done():
            _report_unexpected_exit(monitor, listener.serve_task)
        return await stopped
    finally:
        monitor.detach()
        sock.close()


def _report_unexpected_exit(monitor: FaultMonitor, serve_task: asyncio.Task[None]) -> None:
    if serve_task.cancelled():
        monitor.request_shutdown("listener cancelled")
        return
    exc = serve_task.exception()
    if exc is not None:
        monitor.handle_fault(exc, UNCAUGHT_EXCEPTION)
    # no-op when a drain is already under way
    monitor.request_shutdown("listener stopped")


def main() -> None:
    sys.exit(asyncio.run(serve()))


if __name__ == "__main__":
    main()
