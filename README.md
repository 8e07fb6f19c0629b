# wapchost

A host-side implementation of the waPC (WebAssembly Procedure Calls) protocol.
The package keeps the state of a waPC conversation and drives an engine
provider through calls to and from a guest. It can also spread calls over a
pool of worker hosts. A small MessagePack codec is included for payloads.

## Installation

```
pip install wapchost
```

To run the tests:

```
pip install "wapchost[test]"
pytest
```

## What is not included

The package has no WebAssembly engine. You supply an engine provider, an object
that implements `init`, `call` and `replace`. The package also has no library
for writing guest modules and no command-line tool.

`wapchost.protocol.WasiParams` only holds WASI options (`argv`, `map_dirs`,
`env_vars`, `preopened_dirs`) so that an engine provider can use them. The hosts
do not read it.

## A host with an engine provider

```python
from wapchost.host import WapcHost, WebAssemblyEngineProvider


class EchoEngine(WebAssemblyEngineProvider):
    def init(self, host):
        self.state = host  # a wapchost.modulestate.ModuleState

    def call(self, op_length, msg_length):
        request = self.state.get_guest_request()
        self.state.set_guest_response(request.msg)
        return 1  # non-zero means success, 0 means failure

    def replace(self, module):
        pass


def host_callback(module_id, binding, namespace, operation, payload):
    return b"reply from host"


host = WapcHost(EchoEngine(), host_callback)
assert host.call("echo", b"hello") == b"hello"
```

Each host is given a process-wide unique id, which `host.id()` returns. The id
is passed as the first argument to the host callback.

When the guest calls back into the host, the engine calls
`state.do_host_call(binding, namespace, operation, payload)`. This runs the host
callback and returns 1 on success or 0 on failure. The engine then reads the
result with `get_host_response()` or `get_host_error()`. If no callback was
given, the call fails with the error `"Missing host callback function!"`. Guest
log messages go through `do_console_log`, which writes them to the
`wapchost.modulestate` logger at INFO level.

Errors, all subclasses of `wapchost.errors.WapcError`:

- `InitFailed`: the engine's `init` raised while the host was being created.
- `GuestCallFailure`: the engine's `call` raised, returned 0, or returned
  success without setting a response. The message is the guest error if one
  was set.
- `ReplacementFailed`: `replace_module` failed.

## Async hosts

`wapchost.host_async.WapcHostAsync` works the same way with coroutines. Build it
with `await WapcHostAsync.create(engine, host_callback)`. The engine implements
`WebAssemblyEngineProviderAsync` and receives a
`wapchost.modulestate.ModuleStateAsync`, whose accessors are coroutines. The
host callback is a coroutine function.

## Host pools

```python
import asyncio

from wapchost.pool import HostPoolBuilder


async def main():
    pool = (
        HostPoolBuilder()
        .name("echo pool")
        .factory(lambda: WapcHost(EchoEngine(), None))
        .min_threads(1)
        .max_threads(5)
        .build()
    )
    with pool:
        return await pool.call("echo", b"hello")


assert asyncio.run(main()) == b"hello"
```

Each worker thread owns one host made by the factory. The pool starts
`min_threads` workers, and these run until the pool shuts down. If no worker
takes a call within `max_wait`, the pool starts another worker, up to
`max_threads`. A worker started this way exits after `max_idle` with no work.
Durations are given in seconds or as a `datetime.timedelta`. The defaults are
1 and 2 workers, 0.1 seconds of wait and 300 seconds of idle time.
`num_active_workers()` reports how many workers are running.

`build()` raises `ValueError` if no factory was set. Errors raised by a host
reach the caller unchanged. Any other failure is raised as
`wapchost.errors.GeneralError`. `shutdown()` stops and joins all workers, and
requests still queued fail with `RequestFailed`. Calling `call` or `shutdown`
on a pool that is already shut down raises `NoPool`. Leaving a `with` block
shuts the pool down if it is still open.

## MessagePack codec

```python
from dataclasses import dataclass

from wapchost.codec import deserialize, serialize


@dataclass
class Person:
    first_name: str
    last_name: str
    age: int


data = serialize(Person("Samuel", "Clemens", 49))
assert deserialize(data, Person) == Person("Samuel", "Clemens", 49)
assert deserialize(serialize("hello")) == "hello"
```

Dataclasses are encoded as maps keyed by field name. `deserialize` can take a
target: a dataclass (read from a map or an array), a builtin type, or a typed
`list`, `tuple`, `dict` or `Optional`/union. Without a target it returns the
plain decoded value. A failure raises `wapchost.errors.SerializationError` or
`DeserializationError`. Both derive from `CodecError`, not from `WapcError`.

## Protocol names

`wapchost.protocol` defines the waPC function names, for example `GUEST_CALL`,
`HOST_CALL` and `GUEST_REQUEST_FN`. It also defines the import namespace
`HOST_NAMESPACE` (`"wapc"`) and `REQUIRED_STARTS`, the start functions an engine
should run in order (`"_start"`, then `"wapc_init"`). It also defines the
`Invocation` record (`operation`, `msg`) and `next_module_id()`.