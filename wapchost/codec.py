"""MessagePack serialization for data exchanged with waPC guests."""

from __future__ import annotations

import dataclasses
import types
import typing
from typing import Any, Union

import msgpack

from .errors import DeserializationError, SerializationError

_NAMED_TYPES: dict[str, Any] = {
    "str": str,
    "int": int,
    "float": float,
    "bool": bool,
    "bytes": bytes,
    "list": list,
    "dict": dict,
    "tuple": tuple,
    "Any": Any,
}


def _struct_map(obj: Any) -> Any:
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: getattr(obj, f.name) for f in dataclasses.fields(obj)}
    if isinstance(obj, (set, frozenset)):
        return list(obj)
    raise TypeError(f"cannot serialize object of type {type(obj).__name__}")


def serialize(item: Any) -> bytes:
    """Encode a value as MessagePack bytes; dataclasses become maps keyed by field name."""
    try:
        return msgpack.packb(item, default=_struct_map, use_bin_type=True)
    except (TypeError, ValueError, OverflowError) as exc:
        raise SerializationError(str(exc)) from exc


def _field_type(field: dataclasses.Field) -> Any:
    """The declared type of a field; string annotations resolve only for plain builtin names."""
    declared = field.type
    if isinstance(declared, str):
        return _NAMED_TYPES.get(declared.strip())
    return declared


def _convert_struct(value: Any, target: type) -> Any:
    fields = [f for f in dataclasses.fields(target) if f.init]
    if isinstance(value, dict):
        kwargs = {f.name: _convert(value[f.name], _field_type(f)) for f in fields if f.name in value}
    elif isinstance(value, list):
        if len(value) > len(fields):
            raise DeserializationError(f"invalid length {len(value)} for struct {target.__name__}")
        kwargs = {f.name: _convert(v, _field_type(f)) for f, v in zip(fields, value)}
    else:
        raise DeserializationError(
            f"invalid type: {type(value).__name__}, expected struct {target.__name__}"
        )
    try:
        return target(**kwargs)
    except TypeError as exc:
        raise DeserializationError(str(exc)) from exc


def _convert(value: Any, target: Any) -> Any:
    if target is None or target is Any:
        return value
    if isinstance(target, type) and dataclasses.is_dataclass(target):
        return _convert_struct(value, target)

    origin = typing.get_origin(target)
    args = typing.get_args(target)
    if origin in (Union, types.UnionType):
        if value is None and type(None) in args:
            return None
        for option in (a for a in args if a is not type(None)):
            try:
                return _convert(value, option)
            except DeserializationError:
                continue
        raise DeserializationError(f"invalid value {value!r} for {target}")
    if origin is list:
        if not isinstance(value, list):
            raise DeserializationError(f"invalid type: {type(value).__name__}, expected a sequence")
        inner = args[0] if args else None
        return [_convert(v, inner) for v in value]
    if origin is tuple:
        if not isinstance(value, list):
            raise DeserializationError(f"invalid type: {type(value).__name__}, expected a tuple")
        if len(args) == 2 and args[1] is Ellipsis:
            return tuple(_convert(v, args[0]) for v in value)
        if args and len(args) != len(value):
            raise DeserializationError(f"invalid length {len(value)}, expected {len(args)}")
        return tuple(_convert(v, a) for v, a in zip(value, args)) if args else tuple(value)
    if origin is dict:
        if not isinstance(value, dict):
            raise DeserializationError(f"invalid type: {type(value).__name__}, expected a map")
        key_t, val_t = args if args else (None, None)
        return {_convert(k, key_t): _convert(v, val_t) for k, v in value.items()}

    if isinstance(target, type):
        if target is float and isinstance(value, int) and not isinstance(value, bool):
            return float(value)
        if target is int and isinstance(value, bool):
            raise DeserializationError("invalid type: boolean, expected integer")
        if target is tuple and isinstance(value, list):
            return tuple(value)
        if isinstance(value, target):
            return value
        raise DeserializationError(
            f"invalid type: {type(value).__name__}, expected {target.__name__}"
        )
    return value


def deserialize(buf: bytes, target: Any = None) -> Any:
    """Decode MessagePack bytes, optionally into ``target`` (a dataclass, builtin or generic)."""
    unpacker = msgpack.Unpacker(raw=False, strict_map_key=False)
    try:
        unpacker.feed(bytes(buf))
        value = next(unpacker)
    except StopIteration as exc:
        raise DeserializationError("unexpected end of MessagePack data") from exc
    except (ValueError, TypeError, msgpack.UnpackException) as exc:
        raise DeserializationError(str(exc)) from exc
    return _convert(value, target)