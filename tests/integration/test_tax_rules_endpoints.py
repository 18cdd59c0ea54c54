"""Integration tests for the administrative tax rule endpoints."""

from __future__ import annotations

from flask.testing import FlaskClient

from naijatax.backend.app import create_app
from naijatax.backend.rules import EngineSettings, RemoteDelta, RemoteFetchResult, build_engine


class StaticAuthority:
    def __init__(self, **overrides) -> None:
        self.calls = 0
        self.result = RemoteFetchResult(
            tuple(RemoteDelta(path, value) for path, value in overrides.items())
        )

    def fetch_remote_overrides(self) -> RemoteFetchResult:
        self.calls += 1
        return self.result


def test_get_tax_rules_lists_base_and_effective_config(client: FlaskClient) -> None:
    response = client.get("/api/v1/tax-rules")

    assert response.status_code == 200
    payload = response.get_json()
    assert payload["base"]["vatRate"] == 0.075
    assert payload["effective"]["rates"]["pitBands"][0]["rate"] == 0.07
    assert payload["overrides"] == {"revision": 0, "overrides": []}
    assert payload["metadata"]["overrideCount"] == 0


def test_post_overrides_records_provenance(client: FlaskClient) -> None:
    response = client.post(
        "/api/v1/tax-rules",
        json={"overrides": {"pitBands[0].rate": 0.05, "cgtRate": 0.12}, "actor": "ops"},
    )

    assert response.status_code == 200
    payload = response.get_json()
    assert payload["applied"] == {"pitBands[0].rate": 1, "cgtRate": 1}
    assert payload["effective"]["rates"]["pitBands"][0]["rate"] == 0.05

    history = client.get("/api/v1/tax-rules/history", query_string={"path": "cgtRate"})
    entries = history.get_json()["history"]
    assert len(entries) == 1
    assert entries[0]["actor"] == "ops"
    assert entries[0]["source"] == "api"
    assert entries[0]["version"] == 1


def test_post_overrides_rejects_unknown_field(client: FlaskClient) -> None:
    response = client.post(
        "/api/v1/tax-rules",
        json={"overrides": {"vatRate": 0.08, "cit.hugeCompanyRate": 0.35}},
    )

    assert response.status_code == 400
    payload = response.get_json()
    assert payload["error"] == "unknown_field"
    assert payload["field"] == "cit.hugeCompanyRate"

    snapshot = client.get("/api/v1/tax-rules").get_json()["overrides"]
    assert snapshot["overrides"] == []


def test_post_overrides_rejects_invalid_values(client: FlaskClient) -> None:
    response = client.post(
        "/api/v1/tax-rules",
        json={"overrides": {"pitBands[2].lowerBound": 650000}},
    )

    assert response.status_code == 400
    payload = response.get_json()
    assert payload["error"] == "validation_error"
    assert payload["field"] == "pitBands[2].lowerBound"


def test_post_overrides_requires_mapping(client: FlaskClient) -> None:
    response = client.post("/api/v1/tax-rules", json={"overrides": ["vatRate", 0.08]})

    assert response.status_code == 400
    assert response.get_json()["field"] == "overrides"


def test_history_without_path_returns_all_entries(client: FlaskClient) -> None:
    client.post("/api/v1/tax-rules", json={"overrides": {"vatRate": 0.08}})
    client.post("/api/v1/tax-rules", json={"overrides": {"cgtRate": 0.12}})

    response = client.get("/api/v1/tax-rules/history")

    assert [entry["path"] for entry in response.get_json()["history"]] == [
        "vatRate",
        "cgtRate",
    ]


def test_refresh_without_remote_is_a_conflict(client: FlaskClient) -> None:
    response = client.post("/api/v1/tax-rules/refresh")

    assert response.status_code == 409
    assert response.get_json()["error"] == "refresh_disabled"


def test_refresh_now_pulls_remote_overrides() -> None:
    authority = StaticAuthority(vatRate=0.1)
    engine = build_engine(
        EngineSettings(remote_url="https://rates.example.test"), authority=authority
    )
    app = create_app(engine)
    app.config.update(TESTING=True)

    with app.test_client() as client:
        response = client.post("/api/v1/tax-rules/refresh")

    assert response.status_code == 200
    payload = response.get_json()
    assert payload["refresh"]["consecutiveFailureCount"] == 0
    assert payload["refresh"]["appliedCount"] == 1
    assert payload["metadata"]["remoteUrl"] == "https://rates.example.test"
    assert payload["metadata"]["refreshStatus"] == "fresh"
    assert authority.calls == 1
    engine.close()

