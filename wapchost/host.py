"""Synchronous waPC host runtime and the engine provider interface it drives."""

from __future__ import annotations

import abc
import threading
from typing import Optional

from .errors import GuestCallFailure, InitFailed, ReplacementFailed
from .modulestate import ModuleState
from .protocol import HostCallback, Invocation, next_module_id

_NO_ERROR_ON_FAILURE = "No error message set for call failure"
_NO_RESULT_ON_SUCCESS = "No error message OR response set for call success"


class WebAssemblyEngineProvider(abc.ABC):
    """Low-level WebAssembly engine that carries out the waPC conversation.

    Implementations raise an exception to signal failure.
    """

    @abc.abstractmethod
    def init(self, host: ModuleState) -> None:
        """Prepare the engine and keep the module state for later calls."""

    @abc.abstractmethod
    def call(self, op_length: int, msg_length: int) -> int:
        """Invoke ``__guest_call``; return non-zero on success, 0 on failure.

        Before returning, the engine must have set the guest response or
        guest error on the module state.
        """

    @abc.abstractmethod
    def replace(self, module: bytes) -> None:
        """Swap in new module bytes; raise if replacement is not supported."""


def _call_outcome(callresult: int, response: Optional[bytes], error: Optional[str]) -> bytes:
    if callresult == 0:
        raise GuestCallFailure(error if error is not None else _NO_ERROR_ON_FAILURE)
    if response is not None:
        return response
    raise GuestCallFailure(error if error is not None else _NO_RESULT_ON_SUCCESS)


class WapcHost:
    """A WebAssembly host runtime for waPC-compliant modules.

    Calls are made by operation name with an opaque payload; neither is
    interpreted beyond the operation being a UTF-8 string.
    """

    def __init__(
        self,
        engine: WebAssemblyEngineProvider,
        host_callback: Optional[HostCallback] = None,
    ) -> None:
        self._engine = engine
        self._engine_lock = threading.Lock()
        self._state = ModuleState(host_callback, next_module_id())
        with self._engine_lock:
            try:
                self._engine.init(self._state)
            except Exception as exc:
                raise InitFailed(str(exc)) from exc

    def id(self) -> int:
        """Return the unique identifier of this module."""
        return self._state.id

    def call(self, op: str, payload: bytes) -> bytes:
        """Invoke ``__guest_call`` with an operation and payload; return the guest's reply."""
        inv = Invocation(op, payload)
        op_len = len(inv.operation.encode("utf-8"))
        msg_len = len(inv.msg)
        self._state.begin_call(inv)

        with self._engine_lock:
            try:
                callresult = self._engine.call(op_len, msg_len)
            except Exception as exc:
                raise GuestCallFailure(str(exc)) from exc

        return _call_outcome(
            callresult, self._state.get_guest_response(), self._state.get_guest_error()
        )

    def replace_module(self, module: bytes) -> None:
        """Hot-swap the WebAssembly module; do not call concurrently with :meth:`call`."""
        with self._engine_lock:
            try:
                self._engine.replace(bytes(module))
            except Exception as exc:
                raise ReplacementFailed(str(exc)) from exc

    def __repr__(self) -> str:
        return f"WapcHost(state={self._state!r})"