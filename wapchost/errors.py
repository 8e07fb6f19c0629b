"""Exception types raised by the host, the codec and the host pool."""

from __future__ import annotations

from typing import Any


class WapcError(Exception):
    """Base class for all waPC host errors."""

    _template = "{}"

    def __init__(self, detail: Any = "") -> None:
        super().__init__(detail)
        self.detail = detail

    def __str__(self) -> str:
        return self._template.format(self.detail)


class NoSuchFunction(WapcError):
    """A waPC protocol function is missing from the module."""

    _template = "No such function in Wasm module"


class IOFailure(WapcError):
    """An I/O operation failed."""

    _template = "I/O Error: {}"


class WasmMisc(WapcError):
    """Miscellaneous WebAssembly failure."""

    _template = "WebAssembly failure: {}"


class HostCallFailure(WapcError):
    """A host call failed."""

    _template = "Error during host call: {}"


class InitFailed(WapcError):
    """The engine provider could not be initialized."""

    _template = "Initialization failed: {}"


class GuestCallFailure(WapcError):
    """A guest call failed."""

    _template = "Guest call failure: {}"


class ReplacementFailed(WapcError):
    """Swapping one module for another failed."""

    _template = "Module replacement failed: {}"


class ProviderFailure(WapcError):
    """The WebAssembly engine provider reported a failure."""

    _template = "WASM Provider failure: {}"


class GeneralError(WapcError):
    """Any other failure."""

    _template = "General: {}"


class RequestFailed(WapcError):
    """No result could be received from a pool worker."""

    _template = "Request failed: {}"


class NoPool(WapcError):
    """The pool is uninitialized or has already been shut down."""

    _template = "No pool available. Have you initialized the HostPool or already shut it down?"

    def __init__(self) -> None:
        super().__init__("")


class CodecError(Exception):
    """Base class for serialization errors."""


class SerializationError(CodecError):
    """A value could not be encoded as MessagePack."""


class DeserializationError(CodecError):
    """MessagePack bytes could not be decoded into the requested type."""