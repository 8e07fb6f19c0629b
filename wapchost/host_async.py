"""Asyncio waPC host runtime and the async engine provider interface."""

from __future__ import annotations

import abc
import asyncio
from typing import Optional

from .errors import GuestCallFailure, InitFailed, ReplacementFailed
from .modulestate import ModuleStateAsync
from .protocol import HostCallbackAsync, Invocation, next_module_id

_NO_ERROR_ON_FAILURE = "No error message set for call failure"
_NO_RESULT_ON_SUCCESS = "No error message OR response set for call success"


class WebAssemblyEngineProviderAsync(abc.ABC):
    """Async low-level WebAssembly engine that carries out the waPC conversation."""

    @abc.abstractmethod
    async def init(self, host: ModuleStateAsync) -> None:
        """Prepare the engine and keep the module state for later calls."""

    @abc.abstractmethod
    async def call(self, op_length: int, msg_length: int) -> int:
        """Invoke ``__guest_call``; return non-zero on success, 0 on failure."""

    @abc.abstractmethod
    async def replace(self, module: bytes) -> None:
        """Swap in new module bytes; raise if replacement is not supported."""


class WapcHostAsync:
    """A waPC host runtime for use from asyncio code. Build one with :meth:`create`."""

    def __init__(self, engine: WebAssemblyEngineProviderAsync, state: ModuleStateAsync) -> None:
        self._engine = engine
        self._engine_lock = asyncio.Lock()
        self._state = state

    @classmethod
    async def create(
        cls,
        engine: WebAssemblyEngineProviderAsync,
        host_callback: Optional[HostCallbackAsync] = None,
    ) -> "WapcHostAsync":
        """Create a host around ``engine`` and initialize the engine."""
        state = ModuleStateAsync(host_callback, next_module_id())
        host = cls(engine, state)
        async with host._engine_lock:
            try:
                await engine.init(state)
            except Exception as exc:
                raise InitFailed(str(exc)) from exc
        return host

    def id(self) -> int:
        """Return the unique identifier of this module."""
        return self._state.id

    async def call(self, op: str, payload: bytes) -> bytes:
        """Invoke ``__guest_call`` with an operation and payload; return the guest's reply."""
        inv = Invocation(op, payload)
        op_len = len(inv.operation.encode("utf-8"))
        msg_len = len(inv.msg)
        await self._state.begin_call(inv)

        async with self._engine_lock:
            try:
                callresult = await self._engine.call(op_len, msg_len)
            except Exception as exc:
                raise GuestCallFailure(str(exc)) from exc

        error = await self._state.get_guest_error()
        if callresult == 0:
            raise GuestCallFailure(error if error is not None else _NO_ERROR_ON_FAILURE)
        response = await self._state.get_guest_response()
        if response is not None:
            return response
        raise GuestCallFailure(error if error is not None else _NO_RESULT_ON_SUCCESS)

    async def replace_module(self, module: bytes) -> None:
        """Hot-swap the WebAssembly module; do not call concurrently with :meth:`call`."""
        async with self._engine_lock:
            try:
                await self._engine.replace(bytes(module))
            except Exception as exc:
                raise ReplacementFailed(str(exc)) from exc

    def __repr__(self) -> str:
        return f"WapcHostAsync(state={self._state!r})"