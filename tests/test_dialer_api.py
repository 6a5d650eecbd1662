from __future__ import annotations

import base64
import uuid

from fastapi.testclient import TestClient

from app.domain.report_catalog import ReportCategory
from tests.conftest import API_KEY, REPORT_DATE, report_files

XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _upload(client: TestClient, files: list[tuple[str, bytes]]):
    return client.post(
        "/dialer/upload",
        files=[("files", (name, content, XLSX_MIME)) for name, content in files],
    )


def _upload_complete_day(client: TestClient) -> dict:
    response = _upload(client, report_files(categories=[ReportCategory.AGENT_SUMMARY, ReportCategory.PRODUCTION_REPORT]))
    assert response.status_code == 200, response.text
    return response.json()


def _attachment(name: str, content: bytes) -> dict[str, str]:
    return {"filename": name, "data": base64.b64encode(content).decode("ascii")}


# ---------------------------------------------------------------------------
# Ingestion
# ---------------------------------------------------------------------------


def test_health(client: TestClient) -> None:
    assert client.get("/health").json() == {"status": "ok"}


def test_ingest_requires_api_key(client: TestClient) -> None:
    body = {"attachments": [_attachment(*report_files(categories=[ReportCategory.AGENT_SUMMARY])[0])]}

    assert client.post("/dialer/ingest", json=body).status_code == 401
    assert client.post("/dialer/ingest", json=body, headers={"X-API-Key": "wrong"}).status_code == 401


def test_ingest_decodes_attachments(client: TestClient) -> None:
    files = report_files(categories=[ReportCategory.AGENT_SUMMARY, ReportCategory.PRODUCTION_REPORT])
    body = {
        "attachments": [_attachment(name, content) for name, content in files],
        "sender": "reports@dialer.example",
        "subject": "Daily reports",
    }

    response = client.post("/dialer/ingest", json=body, headers={"X-API-Key": API_KEY})

    assert response.status_code == 200, response.text
    payload = response.json()
    assert payload["source"] == "email"
    assert payload["parsed"] == 2
    assert payload["failed"] == 0
    assert payload["reportDates"] == [REPORT_DATE.isoformat()]
    assert payload["dates"][0]["computed"] is True
    assert payload["dates"][0]["kpis"]["totalTransfers"] == 11


def test_ingest_accepts_legacy_single_attachment(client: TestClient) -> None:
    name, content = report_files(categories=[ReportCategory.AGENT_SUMMARY])[0]
    body = _attachment(name, content)

    response = client.post("/dialer/ingest", json=body, headers={"X-API-Key": API_KEY})

    assert response.status_code == 200, response.text
    payload = response.json()
    assert payload["parsed"] == 1
    assert payload["dates"][0]["computed"] is False
    assert payload["dates"][0]["checklist"]["missing"] == [ReportCategory.PRODUCTION_REPORT.value]


def test_ingest_rejects_undecodable_attachments(client: TestClient) -> None:
    body = {"attachments": [{"filename": "AgentSummary_01-15-2026_01-15-2026.xlsx", "data": "***"}]}

    response = client.post("/dialer/ingest", json=body, headers={"X-API-Key": API_KEY})

    assert response.status_code == 400
    (item,) = response.json()["detail"]["files"]
    assert item["errorCode"] == "invalid_encoding"
    assert item["status"] == "failed"


def test_ingest_without_attachments_is_rejected(client: TestClient) -> None:
    response = client.post("/dialer/ingest", json={"sender": "x"}, headers={"X-API-Key": API_KEY})

    assert response.status_code == 400


def test_upload_computes_complete_day(client: TestClient) -> None:
    payload = _upload_complete_day(client)

    assert payload["source"] == "manual"
    assert payload["parsed"] == 2
    assert [f["status"] for f in payload["files"]] == ["completed", "completed"]
    outcome = payload["dates"][0]
    assert outcome["computed"] is True
    assert outcome["checklist"]["complete"] is True
    assert outcome["kpis"]["alertsCreated"] == 2


def test_upload_of_unrecognized_file_is_rejected(client: TestClient) -> None:
    response = _upload(client, [("notes.txt", b"hello")])

    assert response.status_code == 400
    detail = response.json()["detail"]
    assert detail["message"] == "No report could be parsed."
    assert detail["files"][0]["errorCode"] == "unrecognized_format"


def test_upload_partial_failure_still_succeeds(client: TestClient) -> None:
    files = report_files(categories=[ReportCategory.AGENT_SUMMARY]) + [("notes.txt", b"hello")]

    response = _upload(client, files)

    assert response.status_code == 200
    payload = response.json()
    assert payload["parsed"] == 1
    assert payload["failed"] == 1


def test_upload_over_file_limit(client: TestClient) -> None:
    files = report_files(categories=[ReportCategory.AGENT_SUMMARY]) * 21

    assert _upload(client, files).status_code == 413


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


def test_checklist(client: TestClient) -> None:
    _upload(client, report_files(categories=[ReportCategory.AGENT_SUMMARY]))

    payload = client.get("/dialer/checklist", params={"date": REPORT_DATE.isoformat()}).json()

    assert payload["date"] == REPORT_DATE.isoformat()
    assert payload["received"] == 1
    assert payload["total"] == 2
    assert payload["complete"] is False
    assert payload["computed"] is False
    assert payload["computedAt"] is None
    assert payload["missing"] == [ReportCategory.PRODUCTION_REPORT.value]
    received = {r["category"]: r for r in payload["reports"]}
    assert received[ReportCategory.AGENT_SUMMARY.value]["received"] is True
    assert received[ReportCategory.AGENT_SUMMARY.value]["rows"] == 3


def test_kpis_by_date(client: TestClient) -> None:
    _upload_complete_day(client)

    (row,) = client.get("/dialer/kpis", params={"date": REPORT_DATE.isoformat()}).json()

    assert row["reportDate"] == REPORT_DATE.isoformat()
    assert row["totalTransfers"] == 11
    assert row["transfersPerHour"] == 0.65
    assert row["deltaTransfers"] is None


def test_kpis_by_range(client: TestClient) -> None:
    _upload_complete_day(client)

    rows = client.get(
        "/dialer/kpis",
        params={"start": "2026-01-01", "end": "2026-01-31", "order": "asc"},
    ).json()

    assert [r["reportDate"] for r in rows] == [REPORT_DATE.isoformat()]


def test_kpis_range_validation(client: TestClient) -> None:
    assert client.get("/dialer/kpis", params={"start": "2026-01-01"}).status_code == 400
    assert client.get("/dialer/kpis", params={"start": "2026-01-31", "end": "2026-01-01"}).status_code == 400
    assert client.get("/dialer/kpis", params={"order": "sideways"}).status_code == 422


def test_skills_default_to_latest_date(client: TestClient) -> None:
    _upload_complete_day(client)

    payload = client.get("/dialer/skills").json()

    assert payload["date"] == REPORT_DATE.isoformat()
    assert [s["skill"] for s in payload["skills"]] == ["Medicare", "Final Expense"]


def test_skills_without_data(client: TestClient) -> None:
    assert client.get("/dialer/skills").json() == {"date": None, "skills": []}


def test_agents_sorting(client: TestClient) -> None:
    _upload_complete_day(client)

    top = client.get("/dialer/agents", params={"sort": "tph", "ranking": "top"}).json()
    bottom = client.get("/dialer/agents", params={"sort": "tph", "ranking": "bottom", "limit": 1}).json()

    assert top["agents"][0]["agentName"] == "Alice"
    assert top["agents"][0]["tphRank"] == 1
    assert len(bottom["agents"]) == 1
    assert bottom["agents"][0]["agentName"] != "Alice"


def test_agents_rejects_unknown_sort(client: TestClient) -> None:
    _upload_complete_day(client)

    assert client.get("/dialer/agents", params={"sort": "bogus"}).status_code == 400
    assert client.get("/dialer/agents", params={"ranking": "middle"}).status_code == 400


def test_reports_log(client: TestClient) -> None:
    _upload(client, report_files(categories=[ReportCategory.AGENT_SUMMARY]) + [("notes.txt", b"hello")])

    rows = client.get("/dialer/reports").json()

    by_name = {r["filename"]: r for r in rows}
    assert by_name["notes.txt"]["status"] == "failed"
    assert by_name["notes.txt"]["reportType"] is None
    summary = next(r for r in rows if r["reportType"] == ReportCategory.AGENT_SUMMARY.value)
    assert summary["status"] == "completed"
    assert summary["rowCount"] == 3


def test_alerts_list_and_acknowledge(client: TestClient) -> None:
    _upload_complete_day(client)

    alerts = client.get("/dialer/alerts").json()["alerts"]
    assert {(a["subject"], a["metricName"]) for a in alerts} == {
        ("agent:bob", "dead_air_ratio"),
        ("agent:bob", "tph"),
    }
    assert all(a["ruleName"] for a in alerts)

    response = client.post(
        "/dialer/alerts/ack",
        json={"alertId": alerts[0]["id"], "acknowledgedBy": "qa1", "notes": "coached"},
    )
    assert response.status_code == 200
    assert response.json()["acknowledgedBy"] == "qa1"
    assert response.json()["acknowledged"] is True

    remaining = client.get("/dialer/alerts", params={"unacknowledged": "true"}).json()["alerts"]
    assert [a["id"] for a in remaining] == [alerts[1]["id"]]


def test_acknowledge_unknown_alert(client: TestClient) -> None:
    response = client.post(
        "/dialer/alerts/ack",
        json={"alertId": str(uuid.uuid4()), "acknowledgedBy": "qa1"},
    )

    assert response.status_code == 404


def test_acknowledge_malformed_alert_id_is_not_found(client: TestClient) -> None:
    response = client.post("/dialer/alerts/ack", json={"alertId": "not-a-uuid", "acknowledgedBy": "qa1"})

    assert response.status_code == 404


def test_ingest_accepts_line_wrapped_base64(client: TestClient) -> None:
    name, content = report_files(categories=[ReportCategory.AGENT_SUMMARY])[0]
    wrapped = base64.encodebytes(content).decode("ascii")
    assert "\n" in wrapped

    response = client.post(
        "/dialer/ingest",
        json={"attachments": [{"filename": name, "data": wrapped}]},
        headers={"X-API-Key": API_KEY},
    )

    assert response.status_code == 200, response.text
    assert response.json()["parsed"] == 1


def test_upload_oversized_file_is_recorded_as_too_large(client: TestClient) -> None:
    name, _ = report_files(categories=[ReportCategory.AGENT_SUMMARY])[0]

    response = _upload(client, [(name, b"x" * (1024 * 1024 + 512))])

    assert response.status_code == 400
    (item,) = response.json()["detail"]["files"]
    assert item["errorCode"] == "file_too_large"
