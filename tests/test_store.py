from __future__ import annotations

import asyncio
from typing import Any

import pytest

from gdwatch_console.adapter import encode_config
from gdwatch_console.errors import MalformedTemplateError, TransportError
from gdwatch_console.schema import (
    AdvancedConfig,
    Config,
    MappingRule,
    RcloneConfig,
    RcloneInstance,
    ServerConfig,
    SymediaConfig,
)
from gdwatch_console.store import ConfigStore, FieldPath, read_path, resolve_path


class FakeClient:
    def __init__(self, payload: Any = None, *, save_error: Exception | None = None) -> None:
        self.payload = {} if payload is None else payload
        self.load_error: Exception | None = None
        self.save_error = save_error
        self.sent: list[dict[str, Any]] = []

    async def fetch_config(self) -> Any:
        if self.load_error is not None:
            raise self.load_error
        return self.payload

    async def update_config(self, document: dict[str, Any]) -> str:
        if self.save_error is not None:
            raise self.save_error
        self.sent.append(document)
        return "ok"


def _loaded_store(payload: Any = None, **kwargs: Any) -> tuple[ConfigStore, FakeClient]:
    client = FakeClient(payload, **kwargs)
    store = ConfigStore(client)  # type: ignore[arg-type]
    assert asyncio.run(store.load()) is True
    return store, client


def test_every_field_path_has_a_kind_and_resolves() -> None:
    config = Config()
    for field_path in FieldPath:
        assert field_path.kind in {
            "str",
            "int",
            "bool",
            "str_list",
            "rules",
            "instances",
            "headers",
        }
        read_path(config, field_path)


def test_resolve_path_rejects_unknown_field() -> None:
    with pytest.raises(ValueError, match="unknown config field"):
        resolve_path("server.nope")


def test_load_publishes_decoded_config() -> None:
    store, _ = _loaded_store({"server": {"listen_port": 9000}})

    assert store.is_loaded
    assert store.value is not None
    assert store.value.server.port == 9000
    assert store.loading is False
    assert store.last_error is None


def test_load_accepts_text_payload() -> None:
    store, _ = _loaded_store('{"google": {"rate_limit_qps": 2}}')
    assert store.value is not None
    assert store.value.google.qps == 2


def test_failed_load_keeps_previous_value() -> None:
    store, client = _loaded_store({"server": {"listen_port": 9000}})
    previous = store.value
    client.load_error = TransportError("GET /config/get returned 500", status=500)

    assert asyncio.run(store.load()) is False

    assert store.value is previous
    assert store.loading is False
    assert "500" in (store.last_error or "")


def test_load_rejects_non_object_payload() -> None:
    store = ConfigStore(FakeClient([1, 2, 3]))  # type: ignore[arg-type]
    assert asyncio.run(store.load()) is False
    assert store.value is None
    assert store.last_error


def test_set_path_leaves_prior_snapshot_untouched() -> None:
    store, _ = _loaded_store()
    before = store.value
    assert before is not None

    store.set_path("advanced.log_cleanup.enabled", True)

    after = store.value
    assert after is not None
    assert after.advanced.log_cleanup.enabled is True
    assert before.advanced.log_cleanup.enabled is False
    assert after is not before
    assert after.advanced is not before.advanced


def test_set_path_accepts_enum_and_copies_lists() -> None:
    store, _ = _loaded_store()
    ids = ["d1"]

    store.set_path(FieldPath.GOOGLE_TARGET_DRIVE_IDS, ids)
    ids.append("d2")

    assert store.get_path(FieldPath.GOOGLE_TARGET_DRIVE_IDS) == ["d1"]


def test_get_path_returns_a_copy() -> None:
    store, _ = _loaded_store()
    store.set_path("rclone.path_mappings", [MappingRule("a", "b")])

    rules = store.get_path("rclone.path_mappings")
    rules.append(MappingRule("c", "d"))

    assert store.get_path("rclone.path_mappings") == [MappingRule("a", "b")]


@pytest.mark.parametrize(
    ("path", "value"),
    [
        ("server.port", "9000"),
        ("server.port", True),
        ("symedia.notify_unmatched", "yes"),
        ("rclone.instances", [{"host": "h"}]),
        ("symedia.headers", {"X": 1}),
    ],
)
def test_set_path_rejects_wrong_type(path: str, value: Any) -> None:
    store, _ = _loaded_store()
    before = store.value
    with pytest.raises(TypeError):
        store.set_path(path, value)
    assert store.value is before


def test_mutations_are_noops_before_load() -> None:
    store = ConfigStore(FakeClient())  # type: ignore[arg-type]

    store.set_path("server.port", 9000)
    store.set_field("server", ServerConfig(port=9000))
    asyncio.run(store.save())
    store.reset()

    assert store.value is None
    assert store.revision == 0
    assert store.get_path("server.port") is None


def test_set_field_replaces_section() -> None:
    store, _ = _loaded_store()
    section = ServerConfig(port=1234)

    store.set_field("server", section)
    section.port = 4321

    assert store.value is not None
    assert store.value.server.port == 1234


def test_set_field_rejects_unknown_section_and_wrong_type() -> None:
    store, _ = _loaded_store()
    with pytest.raises(KeyError):
        store.set_field("nope", ServerConfig())
    with pytest.raises(TypeError):
        store.set_field("server", SymediaConfig())


@pytest.mark.parametrize(
    ("key", "section", "leaf"),
    [
        ("symedia", SymediaConfig(body_template=123), "symedia.body_template"),
        ("server", ServerConfig(port="9000"), "server.port"),
        ("advanced", AdvancedConfig(log_cleanup=None), "advanced.log_cleanup.enabled"),
        ("rclone", RcloneConfig(path_mappings=[{"regex": "a"}]), "rclone.path_mappings"),
    ],
)
def test_set_field_rejects_bad_leaf_values(key: str, section: Any, leaf: str) -> None:
    store, client = _loaded_store()
    before = store.value

    with pytest.raises(TypeError, match=leaf):
        store.set_field(key, section)

    assert store.value is before
    asyncio.run(store.save())
    assert store.last_error is None
    assert len(client.sent) == 1


def test_save_sends_encoded_document() -> None:
    store, client = _loaded_store()
    store.set_path("server.port", 9000)
    store.set_path("rclone.instances", [RcloneInstance(host="http://rc")])

    asyncio.run(store.save())

    assert len(client.sent) == 1
    assert client.sent[0]["server"]["listen_port"] == 9000
    assert client.sent[0]["rclone"][0]["name"] == "instance_0"
    assert store.saving is False
    assert store.last_error is None


def test_save_with_malformed_template_keeps_local_value() -> None:
    store, client = _loaded_store()
    store.set_path("symedia.body_template", "{not json")
    before = store.value

    with pytest.raises(MalformedTemplateError):
        asyncio.run(store.save())

    assert store.value is before
    assert store.saving is False
    assert store.last_error
    assert client.sent == []


def test_save_failure_is_recorded_and_reraised() -> None:
    store, client = _loaded_store(save_error=TransportError("POST failed", status=502))
    store.set_path("server.port", 9000)

    with pytest.raises(TransportError):
        asyncio.run(store.save())

    assert store.value is not None
    assert store.value.server.port == 9000
    assert store.last_error == "POST failed"


def test_subscribers_see_each_published_value() -> None:
    store = ConfigStore(FakeClient())  # type: ignore[arg-type]
    seen: list[Config | None] = []
    unsubscribe = store.subscribe(seen.append)

    asyncio.run(store.load())
    store.set_path("server.port", 1)
    unsubscribe()
    store.set_path("server.port", 2)

    assert len(seen) == 2
    assert seen[1] is not None
    assert seen[1].server.port == 1
    assert store.revision == 3


def test_reset_drops_value() -> None:
    store, _ = _loaded_store()
    store.reset()
    assert store.value is None
    assert store.is_loaded is False


def test_slow_load_overwrites_newer_local_edit() -> None:
    class SlowClient(FakeClient):
        def __init__(self) -> None:
            super().__init__({"server": {"listen_port": 1111}})
            self.release = asyncio.Event()
            self.started = asyncio.Event()

        async def fetch_config(self) -> Any:
            self.started.set()
            await self.release.wait()
            return self.payload

    async def scenario() -> int:
        client = SlowClient()
        store = ConfigStore(client)  # type: ignore[arg-type]
        store._publish(Config())
        pending = asyncio.create_task(store.load())
        await client.started.wait()
        store.set_path("server.port", 2222)
        client.release.set()
        await pending
        assert store.value is not None
        return store.value.server.port

    assert asyncio.run(scenario()) == 1111


def test_round_trip_through_store_preserves_template() -> None:
    wire = encode_config(Config(symedia=SymediaConfig(body_template='{"a":1}')))
    store, client = _loaded_store(wire)

    asyncio.run(store.save())

    assert client.sent[0]["symedia"]["body_template"] == {"a": 1}
