import pytest

from wapchost.errors import GuestCallFailure, InitFailed, ReplacementFailed
from wapchost.host_async import WapcHostAsync, WebAssemblyEngineProviderAsync


class EchoEngine(WebAssemblyEngineProviderAsync):
    def __init__(self):
        self.host = None
        self.lengths = []
        self.replaced = []

    async def init(self, host):
        self.host = host

    async def call(self, op_length, msg_length):
        self.lengths.append((op_length, msg_length))
        request = await self.host.get_guest_request()
        await self.host.set_guest_response(request.msg)
        return 1

    async def replace(self, module):
        self.replaced.append(module)


class ScriptedEngine(WebAssemblyEngineProviderAsync):
    def __init__(self, result, response=None, error=None):
        self.result = result
        self.response = response
        self.error = error
        self.host = None

    async def init(self, host):
        self.host = host

    async def call(self, op_length, msg_length):
        if self.response is not None:
            await self.host.set_guest_response(self.response)
        if self.error is not None:
            await self.host.set_guest_error(self.error)
        return self.result

    async def replace(self, module):
        raise RuntimeError("replacement unsupported")


class FailingInitEngine(EchoEngine):
    async def init(self, host):
        raise RuntimeError("boom at init")


class RaisingCallEngine(EchoEngine):
    async def call(self, op_length, msg_length):
        raise RuntimeError("trap in guest")


class HostCallingEngine(EchoEngine):
    async def call(self, op_length, msg_length):
        request = await self.host.get_guest_request()
        code = await self.host.do_host_call("bd", "ns", request.operation, request.msg)
        if code == 1:
            await self.host.set_guest_response(await self.host.get_host_response())
        else:
            await self.host.set_guest_error(await self.host.get_host_error())
        return code


@pytest.mark.asyncio
async def test_echo_round_trip():
    host = await WapcHostAsync.create(EchoEngine())
    assert await host.call("ping", b"this is a test") == b"this is a test"


@pytest.mark.asyncio
async def test_lengths_are_byte_lengths():
    engine = EchoEngine()
    host = await WapcHostAsync.create(engine)
    op = "h\u00e9llo"
    payload = b"payload"
    await host.call(op, payload)
    assert engine.lengths == [(len(op.encode("utf-8")), len(payload))]


@pytest.mark.asyncio
async def test_ids_are_unique_and_increasing():
    first = await WapcHostAsync.create(EchoEngine())
    second = await WapcHostAsync.create(EchoEngine())
    assert second.id() > first.id()


@pytest.mark.asyncio
async def test_init_failure_raises_init_failed():
    with pytest.raises(InitFailed) as info:
        await WapcHostAsync.create(FailingInitEngine())
    assert info.value.detail == "boom at init"


@pytest.mark.asyncio
async def test_failed_call_reports_guest_error():
    host = await WapcHostAsync.create(ScriptedEngine(0, error="bad input"))
    with pytest.raises(GuestCallFailure) as info:
        await host.call("op", b"")
    assert info.value.detail == "bad input"


@pytest.mark.asyncio
async def test_failed_call_without_error_message():
    host = await WapcHostAsync.create(ScriptedEngine(0))
    with pytest.raises(GuestCallFailure) as info:
        await host.call("op", b"")
    assert info.value.detail == "No error message set for call failure"


@pytest.mark.asyncio
async def test_success_without_response_or_error():
    host = await WapcHostAsync.create(ScriptedEngine(1))
    with pytest.raises(GuestCallFailure) as info:
        await host.call("op", b"")
    assert info.value.detail == "No error message OR response set for call success"


@pytest.mark.asyncio
async def test_success_without_response_uses_error():
    host = await WapcHostAsync.create(ScriptedEngine(1, error="partial"))
    with pytest.raises(GuestCallFailure) as info:
        await host.call("op", b"")
    assert info.value.detail == "partial"


@pytest.mark.asyncio
async def test_engine_exception_becomes_guest_call_failure():
    host = await WapcHostAsync.create(RaisingCallEngine())
    with pytest.raises(GuestCallFailure) as info:
        await host.call("op", b"x")
    assert info.value.detail == "trap in guest"


@pytest.mark.asyncio
async def test_state_is_cleared_between_calls():
    engine = ScriptedEngine(1, response=b"first")
    host = await WapcHostAsync.create(engine)
    assert await host.call("op", b"") == b"first"
    engine.response = None
    with pytest.raises(GuestCallFailure) as info:
        await host.call("op", b"")
    assert info.value.detail == "No error message OR response set for call success"


@pytest.mark.asyncio
async def test_replace_module_passes_bytes():
    engine = EchoEngine()
    host = await WapcHostAsync.create(engine)
    await host.replace_module(b"\x00asm")
    assert engine.replaced == [b"\x00asm"]


@pytest.mark.asyncio
async def test_replace_module_failure():
    host = await WapcHostAsync.create(ScriptedEngine(1))
    with pytest.raises(ReplacementFailed) as info:
        await host.replace_module(b"\x00asm")
    assert info.value.detail == "replacement unsupported"


@pytest.mark.asyncio
async def test_async_host_callback_receives_arguments():
    seen = []

    async def callback(module_id, binding, namespace, operation, payload):
        seen.append((module_id, binding, namespace, operation, payload))
        return payload[::-1]

    host = await WapcHostAsync.create(HostCallingEngine(), callback)
    assert await host.call("reverse", b"abc") == b"cba"
    assert seen == [(host.id(), "bd", "ns", "reverse", b"abc")]


@pytest.mark.asyncio
async def test_async_host_callback_failure_propagates():
    async def callback(module_id, binding, namespace, operation, payload):
        raise ValueError("denied")

    host = await WapcHostAsync.create(HostCallingEngine(), callback)
    with pytest.raises(GuestCallFailure) as info:
        await host.call("op", b"")
    assert info.value.detail == "denied"


def test_async_provider_is_abstract():
    with pytest.raises(TypeError):
        WebAssemblyEngineProviderAsync()