"""Per-module conversation state shared between the host and an engine provider."""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Optional

from .protocol import HostCallback, HostCallbackAsync, Invocation

_log = logging.getLogger(__name__)

_MISSING_CALLBACK = "Missing host callback function!"


class ModuleState:
    """Thread-safe handle an engine uses to read and write waPC call data."""

    def __init__(self, host_callback: Optional[HostCallback], module_id: int) -> None:
        self.host_callback = host_callback
        self.id = module_id
        self._lock = threading.Lock()
        self._guest_request: Optional[Invocation] = None
        self._guest_response: Optional[bytes] = None
        self._host_response: Optional[bytes] = None
        self._guest_error: Optional[str] = None
        self._host_error: Optional[str] = None

    def begin_call(self, invocation: Invocation) -> None:
        """Clear results of any previous call and store the new request."""
        with self._lock:
            self._guest_response = None
            self._guest_request = invocation
            self._guest_error = None
            self._host_response = None
            self._host_error = None

    def get_guest_request(self) -> Optional[Invocation]:
        """Return the current guest request, if any."""
        with self._lock:
            return self._guest_request

    def get_host_response(self) -> Optional[bytes]:
        """Return the response of the last host call, if any."""
        with self._lock:
            return self._host_response

    def set_guest_error(self, error: str) -> None:
        """Record an error raised inside a guest call."""
        with self._lock:
            self._guest_error = error

    def set_guest_response(self, response: bytes) -> None:
        """Record the response data of a guest call."""
        with self._lock:
            self._guest_response = bytes(response)

    def get_guest_response(self) -> Optional[bytes]:
        """Return the current guest response, if any."""
        with self._lock:
            return self._guest_response

    def get_guest_error(self) -> Optional[str]:
        """Return the current guest error, if any."""
        with self._lock:
            return self._guest_error

    def get_host_error(self) -> Optional[str]:
        """Return the error of the last host call, if any."""
        with self._lock:
            return self._host_error

    def do_host_call(self, binding: str, namespace: str, operation: str, payload: bytes) -> int:
        """Run the host callback for a guest; return 1 on success, 0 on failure."""
        with self._lock:
            self._host_response = None
            self._host_error = None
        try:
            if self.host_callback is None:
                raise RuntimeError(_MISSING_CALLBACK)
            result = bytes(self.host_callback(self.id, binding, namespace, operation, bytes(payload)))
        except Exception as exc:  # noqa: BLE001 - any callback failure goes back to the guest
            with self._lock:
                self._host_error = str(exc)
            return 0
        with self._lock:
            self._host_response = result
        return 1

    def do_console_log(self, msg: str) -> None:
        """Log a message written by the guest."""
        _log.info("Guest module %s: %s", self.id, msg)

    def __repr__(self) -> str:
        return (
            f"ModuleState(id={self.id}, guest_request={self._guest_request!r}, "
            f"guest_response={self._guest_response!r}, host_response={self._host_response!r}, "
            f"guest_error={self._guest_error!r}, host_error={self._host_error!r}, "
            f"host_callback={'Some(Fn)' if self.host_callback else None})"
        )


class ModuleStateAsync:
    """Async variant of :class:`ModuleState` for use with asyncio engines."""

    def __init__(self, host_callback: Optional[HostCallbackAsync], module_id: int) -> None:
        self.host_callback = host_callback
        self.id = module_id
        self._lock = asyncio.Lock()
        self._guest_request: Optional[Invocation] = None
        self._guest_response: Optional[bytes] = None
        self._host_response: Optional[bytes] = None
        self._guest_error: Optional[str] = None
        self._host_error: Optional[str] = None

    async def begin_call(self, invocation: Invocation) -> None:
        """Clear results of any previous call and store the new request."""
        async with self._lock:
            self._guest_response = None
            self._guest_request = invocation
            self._guest_error = None
            self._host_response = None
            self._host_error = None

    async def get_guest_request(self) -> Optional[Invocation]:
        """Return the current guest request, if any."""
        async with self._lock:
            return self._guest_request

    async def get_host_response(self) -> Optional[bytes]:
        """Return the response of the last host call, if any."""
        async with self._lock:
            return self._host_response

    async def set_guest_error(self, error: str) -> None:
        """Record an error raised inside a guest call."""
        async with self._lock:
            self._guest_error = error

    async def set_guest_response(self, response: bytes) -> None:
        """Record the response data of a guest call."""
        async with self._lock:
            self._guest_response = bytes(response)

    async def get_guest_response(self) -> Optional[bytes]:
        """Return the current guest response, if any."""
        async with self._lock:
            return self._guest_response

    async def get_guest_error(self) -> Optional[str]:
        """Return the current guest error, if any."""
        async with self._lock:
            return self._guest_error

    async def get_host_error(self) -> Optional[str]:
        """Return the error of the last host call, if any."""
        async with self._lock:
            return self._host_error

    async def do_host_call(self, binding: str, namespace: str, operation: str, payload: bytes) -> int:
        """Await the host callback for a guest; return 1 on success, 0 on failure."""
        async with self._lock:
            self._host_response = None
            self._host_error = None
        try:
            if self.host_callback is None:
                raise RuntimeError(_MISSING_CALLBACK)
            result = bytes(
                await self.host_callback(self.id, binding, namespace, operation, bytes(payload))
            )
        except Exception as exc:  # noqa: BLE001 - any callback failure goes back to the guest
            async with self._lock:
                self._host_error = str(exc)
            return 0
        async with self._lock:
            self._host_response = result
        return 1

    def do_console_log(self, msg: str) -> None:
        """Log a message written by the guest."""
        _log.info("Guest module %s: %s", self.id, msg)

    def __repr__(self) -> str:
        return (
            f"ModuleStateAsync(id={self.id}, guest_request={self._guest_request!r}, "
            f"guest_response={self._guest_response!r}, host_response={self._host_response!r}, "
            f"guest_error={self._guest_error!r}, host_error={self._host_error!r}, "
            f"host_callback={'Some(Fn)' if self.host_callback else None})"
        )