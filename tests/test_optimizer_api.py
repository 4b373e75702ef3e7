# GearSync test scripts
from __future__ import annotations

import json
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from conftest import CountingStore, read_json
from gearsync import Service, build_service, create_app
from gs_platform.errors import DecodeError
from gs_platform.handler import decode_optimizer_body
from gs_platform.state import OptimizerEntry

BODY = [{"speed": [10, 11]}, {"torque": [12]}]


@pytest.fixture()
def service(workspace: dict[str, Path], store: CountingStore) -> Service:
    return build_service(workspace["config"], store=store)


@pytest.fixture()
def client(service: Service) -> TestClient:
    return TestClient(create_app(service, watch=False))


def test_decode_optimizer_body() -> None:
    out = decode_optimizer_body(b'[{"a": [1, 2]}, {"b": []}]')
    assert out == [OptimizerEntry("a", (1, 2)), OptimizerEntry("b", ())]


@pytest.mark.parametrize(
    "raw",
    [
        b"not json",
        b'{"a": [1]}',
        b'[{"a": [1], "b": [2]}]',
        b"[{}]",
        b'[{"a": 1}]',
        b'[{"a": [-1]}]',
        b'[{"a": [4294967296]}]',
        b'[{"a": ["1"]}]',
        b'[{"a": [1.5]}]',
        b'[{"a": [1]}, {"a": [2]}]',
        b"\xff\xfe",
        b'[{"a": [NaN]}]',
        b"[" * 100000 + b"]" * 100000,
    ],
)
def test_decode_rejects_malformed_bodies(raw: bytes) -> None:
    with pytest.raises(DecodeError):
        decode_optimizer_body(raw)


def test_post_updates_both_documents(client: TestClient, workspace: dict[str, Path], service: Service) -> None:
    r = client.post("/", json=BODY)

    assert r.status_code == 200
    assert r.content == b""
    assert read_json(workspace["settings"])["maxSpeed"] == [10, 11]
    gear = read_json(workspace["profile"])["Breakpoints"]["Gear"]
    assert gear[0]["ID"] == [10, 11] and gear[1]["ID"] == [12]
    assert service.cache.snapshot() == (OptimizerEntry("speed", (10, 11)), OptimizerEntry("torque", (12,)))


def test_repeated_post_is_a_no_op(client: TestClient, store: CountingStore, service: Service) -> None:
    assert client.post("/", json=BODY).status_code == 200
    saves = store.saves
    report = service.handler.last_report

    reordered = [{"torque": [12]}, {"speed": [11, 10]}]
    assert client.post("/", json=reordered).status_code == 200

    assert store.saves == saves == 2
    assert service.handler.last_report is report


def test_malformed_body_changes_nothing(client: TestClient, workspace: dict[str, Path], service: Service) -> None:
    before = workspace["profile"].read_bytes(), workspace["settings"].read_bytes()

    r = client.post("/", content=b'[{"speed": "fast"}]', headers={"Content-Type": "application/json"})

    assert r.status_code == 400
    assert service.cache.is_empty()
    assert (workspace["profile"].read_bytes(), workspace["settings"].read_bytes()) == before


def test_duplicate_labels_are_rejected(client: TestClient, service: Service) -> None:
    r = client.post("/", json=[{"speed": [1]}, {"speed": [2]}])
    assert r.status_code == 400
    assert service.cache.is_empty()


def test_failed_update_is_not_cached(client: TestClient, workspace: dict[str, Path], service: Service) -> None:
    workspace["profile"].unlink()

    assert client.post("/", json=BODY).status_code == 200
    assert service.cache.is_empty()
    assert service.handler.last_report.settings_changed == ["speed"]


def test_cors_allows_any_origin(client: TestClient) -> None:
    r = client.options(
        "/",
        headers={
            "Origin": "https://example.github.io",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "content-type",
        },
    )
    assert r.status_code == 200
    assert r.headers["access-control-allow-origin"] == "*"

    r2 = client.post("/", json=[], headers={"Origin": "https://example.github.io"})
    assert r2.headers["access-control-allow-origin"] == "*"


def test_concurrent_identical_requests_write_once(service: Service, store: CountingStore) -> None:
    raw = json.dumps(BODY).encode()
    with ThreadPoolExecutor(max_workers=8) as pool:
        statuses = list(pool.map(lambda _: service.handler.handle(raw), range(32)))

    assert statuses == [200] * 32
    assert store.profile_saves == 1
    assert store.settings_saves == 1
    assert store.max_in_flight == 1


def test_deeply_nested_body_is_a_client_error(workspace: dict[str, Path], service: Service) -> None:
    client = TestClient(create_app(service, watch=False), raise_server_exceptions=False)
    before = workspace["profile"].read_bytes(), workspace["settings"].read_bytes()

    r = client.post("/", content=b"[" * 100000 + b"]" * 100000, headers={"Content-Type": "application/json"})

    assert r.status_code == 400
    assert service.cache.is_empty()
    assert (workspace["profile"].read_bytes(), workspace["settings"].read_bytes()) == before
