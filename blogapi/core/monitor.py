"""Process-wide fault monitor and graceful shutdown.

The monitor owns the lifecycle of the bound listener::

    starting -> listening -> draining -> stopped

It subscribes to faults that escape per-request handling (asyncio loop
exceptions, uncaught thread exceptions) and to termination signals. A
non-operational fault or a signal starts a single drain; anything that
arrives once draining has begun is ignored.
"""

from __future__ import annotations

import asyncio
import logging
import signal
import threading
from enum import StrEnum
from types import FrameType
from typing import Any, Callable, Protocol

from blogapi.core.errors import normalize
from blogapi.core.logging import AppLogger, write_last_resort
from blogapi.core.metrics import record_fault

logger = logging.getLogger("blogapi.monitor")

EXIT_OK = 0
EXIT_FAULT = 1

UNCAUGHT_EXCEPTION = "uncaughtException"
UNHANDLED_REJECTION = "unhandledRejection"

HANDLED_SIGNALS: tuple[signal.Signals, ...] = (signal.SIGINT, signal.SIGTERM)


class LifecycleState(StrEnum):
    STARTING = "starting"
    LISTENING = "listening"
    DRAINING = "draining"
    STOPPED = "stopped"


class Listener(Protocol):
    """Network listener the monitor can drain."""

    async def close(self) -> None:
        """Stop accepting connections and wait for in-flight requests."""

    async def force_close(self) -> None:
        """Abort whatever is still running after the drain deadline."""


class FaultMonitor:
    """Decides whether the process keeps serving or drains and exits."""

    def __init__(self, app_logger: AppLogger, *, drain_timeout: float = 10.0) -> None:
        if drain_timeout <= 0:
            raise ValueError("drain_timeout must be positive.")
        self.app_logger = app_logger
        self.drain_timeout = drain_timeout
        self._state = LifecycleState.STARTING
        self._exit_code = EXIT_OK
        self._listener: Listener | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._drain_task: asyncio.Task[None] | None = None
        self._stopped = asyncio.Event()
        self._installed_signals: list[signal.Signals] = []
        self._previous_signal_handlers: dict[signal.Signals, Any] = {}
        self._previous_thread_hook: Callable[[threading.ExceptHookArgs], Any] | None = None

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def exit_code(self) -> int:
        return self._exit_code

    def attach(self, listener: Listener) -> None:
        """Take ownership of ``listener`` and subscribe to process-level faults."""
        if self._listener is not None:
            raise RuntimeError("FaultMonitor is already attached to a listener.")
        if self._state is not LifecycleState.STARTING:
            raise RuntimeError(f"Cannot attach while {self._state}.")

        loop = asyncio.get_running_loop()
        self._loop = loop
        self._listener = listener

        loop.set_exception_handler(self._on_loop_exception)
        self._previous_thread_hook = threading.excepthook
        threading.excepthook = self._on_thread_exception
        self._install_signal_handlers(loop)

        self._state = LifecycleState.LISTENING
        logger.info("Fault monitor attached", extra={"drain_timeout": self.drain_timeout})

    def detach(self) -> None:
        """Restore the hooks replaced by :meth:`attach`."""
        loop = self._loop
        if loop is None:
            return
        loop.set_exception_handler(None)
        if self._previous_thread_hook is not None:
            threading.excepthook = self._previous_thread_hook
            self._previous_thread_hook = None
        for sig in self._installed_signals:
            try:
                loop.remove_signal_handler(sig)
            except (NotImplementedError, RuntimeError):
                signal.signal(sig, self._previous_signal_handlers.get(sig, signal.SIG_DFL))
        self._installed_signals.clear()
        self._previous_signal_handlers.clear()
        self._loop = None

    def handle_fault(self, value: object, source: str = UNCAUGHT_EXCEPTION) -> None:
        """Log a process-level fault and drain when it is not operational."""
        try:
            error = normalize(value)
            self.app_logger.log_fault(error, source)
            record_fault(source, error.operational)
            if error.operational:
                logger.warning(
                    "Operational error reached the process fault handler; still serving",
                    extra={"source": source, "status_code": error.status_code},
                )
                return
            self._begin_drain(EXIT_FAULT, reason=source)
        except Exception as handling_error:  # noqa: BLE001
            write_last_resort(
                "The error handler failed. Here are the handler failure and then the "
                f"origin error that it tried to handle: {handling_error!r} / {value!r}"
            )
            self._begin_drain(EXIT_FAULT, reason="fault handler failure")

    def request_shutdown(self, reason: str = "shutdown requested") -> None:
        """Honor an external termination request."""
        if self._state in (LifecycleState.DRAINING, LifecycleState.STOPPED):
            logger.info("Shutdown already in progress", extra={"reason": reason})
            return
        logger.warning("Received %s. Terminating server...", reason)
        self._begin_drain(EXIT_OK, reason=reason)

    async def drain(self, exit_code: int = EXIT_OK, reason: str = "drain requested") -> int:
        """Start (or join) the drain and wait until the monitor is stopped."""
        self._begin_drain(exit_code, reason=reason)
        return await self.wait_stopped()

    async def wait_stopped(self) -> int:
        await self._stopped.wait()
        return self._exit_code

    def _begin_drain(self, exit_code: int, *, reason: str) -> None:
        # Check-and-set happens synchronously on the loop thread, so queued
        # fault events cannot interleave between the check and the transition.
        if self._state in (LifecycleState.DRAINING, LifecycleState.STOPPED):
            return

        self._exit_code = exit_code
        if self._listener is None:
            self._state = LifecycleState.STOPPED
            self._stopped.set()
            return

        self._state = LifecycleState.DRAINING
        loop = self._loop or asyncio.get_running_loop()
        self._drain_task = loop.create_task(self._drain(reason), name="fault-monitor-drain")

    async def _drain(self, reason: str) -> None:
        listener = self._listener
        assert listener is not None
        logger.warning("Gracefully shutting down the server...", extra={"reason": reason})
        try:
            await asyncio.wait_for(listener.close(), timeout=self.drain_timeout)
            logger.warning("Server closed.")
        except asyncio.TimeoutError:
            logger.error(
                "Drain deadline elapsed; forcing remaining connections closed",
                extra={"drain_timeout": self.drain_timeout},
            )
            await self._force_close(listener)
        except Exception as exc:  # noqa: BLE001
            write_last_resort(f"Listener failed to close during drain: {exc!r}")
            self._exit_code = EXIT_FAULT
            await self._force_close(listener)
        finally:
            self._state = LifecycleState.STOPPED
            self._stopped.set()
            logger.info("Exiting process.", extra={"exit_code": self._exit_code})

    async def _force_close(self, listener: Listener) -> None:
        try:
            await listener.force_close()
        except Exception as exc:  # noqa: BLE001
            write_last_resort(f"Listener failed to force close: {exc!r}")
            self._exit_code = EXIT_FAULT

    def _on_loop_exception(
        self,
        loop: asyncio.AbstractEventLoop,
        context: dict[str, Any],
    ) -> None:
        value = context.get("exception")
        if value is None:
            # diagnostics such as "Task was destroyed but it is pending!"
            logger.warning("Event loop reported: %s", context.get("message", "unknown issue"))
            return
        source = UNHANDLED_REJECTION if ("future" in context or "task" in context) else UNCAUGHT_EXCEPTION
        self.handle_fault(value, source)

    def _on_thread_exception(self, args: threading.ExceptHookArgs) -> None:
        if args.exc_type is SystemExit:
            return
        loop = self._loop
        if loop is None or loop.is_closed():
            write_last_resort(f"Uncaught exception in thread after shutdown: {args.exc_value!r}")
            return
        loop.call_soon_threadsafe(self.handle_fault, args.exc_value, UNCAUGHT_EXCEPTION)

    def _install_signal_handlers(self, loop: asyncio.AbstractEventLoop) -> None:
        for sig in HANDLED_SIGNALS:
            try:
                loop.add_signal_handler(sig, self.request_shutdown, sig.name)
            except NotImplementedError:
                self._previous_signal_handlers[sig] = signal.getsignal(sig)
                signal.signal(sig, self._signal_fallback)
            except RuntimeError:
                # not the main thread; signals stay with the host process
                continue
            self._installed_signals.append(sig)

    def _signal_fallback(self, signum: int, frame: FrameType | None) -> None:
        loop = self._loop
        if loop is not None and not loop.is_closed():
            loop.call_soon_threadsafe(self.request_shutdown, signal.Signals(signum).name)


__all__ = [
    "EXIT_FAULT",
    "EXIT_OK",
    "FaultMonitor",
    "HANDLED_SIGNALS",
    "LifecycleState",
    "Listener",
    "UNCAUGHT_EXCEPTION",
    "UNHANDLED_REJECTION",
]
