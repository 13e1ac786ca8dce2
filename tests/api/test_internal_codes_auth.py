from __future__ import annotations

from types import SimpleNamespace

from fastapi.testclient import TestClient

from promo_allocator.api.routes import internal_codes
from promo_allocator.main import create_app
from promo_allocator.storage.memory import InMemoryKeyValueStore


def _patch_settings(monkeypatch, *, allowlist: str) -> None:
    monkeypatch.setattr(
        internal_codes,
        "get_settings",
        lambda: SimpleNamespace(
            internal_api_token="internal-secret",
            internal_api_allowlist=allowlist,
            internal_api_trusted_proxies="",
        ),
    )


def test_internal_codes_rejects_missing_token(monkeypatch) -> None:
    _patch_settings(monkeypatch, allowlist="127.0.0.1/32")

    client = TestClient(create_app(store=InMemoryKeyValueStore()), client=("127.0.0.1", 5100))
    response = client.post("/internal/codes/assign", json={"user_id": "u1", "offer_id": "o1"})

    assert response.status_code == 403
    assert response.json() == {"detail": {"code": "E_FORBIDDEN"}}


def test_internal_codes_rejects_wrong_token(monkeypatch) -> None:
    _patch_settings(monkeypatch, allowlist="127.0.0.1/32")

    client = TestClient(create_app(store=InMemoryKeyValueStore()), client=("127.0.0.1", 5101))
    response = client.get("/internal/codes/stats", headers={"X-Internal-Token": "nope"})

    assert response.status_code == 403


def test_internal_codes_rejects_disallowed_ip(monkeypatch) -> None:
    _patch_settings(monkeypatch, allowlist="192.168.0.0/16")

    client = TestClient(create_app(store=InMemoryKeyValueStore()), client=("10.0.0.25", 5102))
    response = client.get(
        "/internal/codes/stats",
        headers={"X-Internal-Token": "internal-secret"},
    )

    assert response.status_code == 403
    assert response.json() == {"detail": {"code": "E_FORBIDDEN"}}


def test_internal_codes_accepts_token_from_allowed_ip(monkeypatch) -> None:
    _patch_settings(monkeypatch, allowlist="127.0.0.1/32")

    client = TestClient(create_app(store=InMemoryKeyValueStore()), client=("127.0.0.1", 5103))
    response = client.get(
        "/internal/codes/stats",
        headers={"X-Internal-Token": "internal-secret"},
    )

    assert response.status_code == 200
    assert response.json() == {"available_count": 0, "assigned_count": 0, "used_count": 0}
