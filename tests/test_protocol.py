from wapchost.protocol import Invocation, WasiParams, next_module_id


def test_invocation_holds_operation_and_payload():
    inv = Invocation("echo", bytearray(b"abc"))
    assert inv.operation == "echo"
    assert inv.msg == b"abc"
    assert isinstance(inv.msg, bytes)


def test_invocation_equality():
    assert Invocation("a", b"1") == Invocation("a", b"1")
    assert Invocation("a", b"1") != Invocation("a", b"2")


def test_wasi_params_defaults_are_empty_and_independent():
    first = WasiParams()
    second = WasiParams()
    first.argv.append("prog")
    assert second.argv == []
    assert first == WasiParams(argv=["prog"])


def test_wasi_params_fields():
    params = WasiParams(
        argv=["a"], map_dirs=[("/x", "/y")], env_vars=[("K", "V")], preopened_dirs=["/tmp"]
    )
    assert params.map_dirs == [("/x", "/y")]
    assert params.env_vars == [("K", "V")]
    assert params.preopened_dirs == ["/tmp"]


def test_next_module_id_strictly_increases():
    ids = [next_module_id() for _ in range(5)]
    assert ids == sorted(ids)
    assert len(set(ids)) == 5
    assert ids[0] >= 1