"""Protocol constants, invocation and WASI parameter types."""

from __future__ import annotations

import itertools
import threading
from dataclasses import dataclass, field
from typing import Awaitable, Callable

HOST_NAMESPACE = "wapc"
"""The module name guest modules must use for their imports."""

# Functions called by the guest, exported by the host.
HOST_CONSOLE_LOG = "__console_log"
HOST_CALL = "__host_call"
GUEST_REQUEST_FN = "__guest_request"
HOST_RESPONSE_FN = "__host_response"
HOST_RESPONSE_LEN_FN = "__host_response_len"
GUEST_RESPONSE_FN = "__guest_response"
GUEST_ERROR_FN = "__guest_error"
HOST_ERROR_FN = "__host_error"
HOST_ERROR_LEN_FN = "__host_error_len"

# Functions called by the host, exported by the guest.
GUEST_CALL = "__guest_call"
WAPC_INIT = "wapc_init"
TINYGO_START = "_start"

REQUIRED_STARTS: tuple[str, ...] = (TINYGO_START, WAPC_INIT)
"""Start functions to attempt to call, in this order."""

HostCallback = Callable[[int, str, str, str, bytes], bytes]
"""Signature of a host callback: (module id, binding, namespace, operation, payload)."""

HostCallbackAsync = Callable[[int, str, str, str, bytes], Awaitable[bytes]]
"""Signature of an async host callback."""

_module_ids = itertools.count(1)
_module_ids_lock = threading.Lock()


def next_module_id() -> int:
    """Return a new process-wide unique module identifier."""
    with _module_ids_lock:
        return next(_module_ids)


@dataclass
class Invocation:
    """An operation name paired with its opaque binary payload."""

    operation: str
    msg: bytes = b""

    def __post_init__(self) -> None:
        self.msg = bytes(self.msg)


@dataclass
class WasiParams:
    """Options for enabling WASI on a module."""

    argv: list[str] = field(default_factory=list)
    map_dirs: list[tuple[str, str]] = field(default_factory=list)
    env_vars: list[tuple[str, str]] = field(default_factory=list)
    preopened_dirs: list[str] = field(default_factory=list)