import io
import json

import pytest

from services.import_jobs import wait_job

SPEC = {
    "column-property": {"0": ["dcterms:title"], "1": ["dcterms:creator"]},
    "column-multivalue": ["1"],
    "multivalue_separator": ";",
}
CSV = b"title,creator\nMona Lisa,Leonardo\nNight Watch,Rembrandt;Workshop\n"


def _post(client, body=CSV, spec=SPEC, query="", filename="data.csv", **form):
    data = {"file": (io.BytesIO(body), filename)}
    if spec is not None:
        data["spec"] = json.dumps(spec)
    data.update(form)
    return client.post(f"/api/v1/imports{query}", data=data,
                       content_type="multipart/form-data")


def test_health(client):
    assert client.get("/health").get_json() == {"ok": True}


def test_sync_import(client):
    resp = _post(client, comment="first load")
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["state"] == "completed"
    assert body["summary"]["created"] == 2
    assert [o["row"] for o in body["outcomes"]] == [2, 3]

    records = client.get("/api/v1/records").get_json()
    assert records["total"] == 2
    assert records["records"][1]["values"]["dcterms:creator"] == ["Rembrandt", "Workshop"]

    run = client.get(f"/api/v1/imports/{body['id']}").get_json()
    assert run["status"] == "completed"
    assert run["comment"] == "first load"
    assert run["filename"] == "data.csv"


def test_row_failures_reported(client):
    spec = dict(SPEC, **{"column-media_source": {"2": "url"}})
    body = b"title,creator,media\nA,x,https://example.org/a.jpg\nB,y,not-a-url\n"
    result = _post(client, body=body, spec=spec).get_json()
    assert result["summary"]["failed"] == 1
    assert result["errors"][0]["row"] == 3
    assert result["errors"][0]["code"] == "sink_rejected"


def test_tsv_upload_defaults_to_tab(client):
    body = b"title\tcreator\nA\tx\n"
    result = _post(client, body=body, filename="data.tsv").get_json()
    assert result["summary"]["created"] == 1
    rec = client.get("/api/v1/records/1").get_json()
    assert rec["values"] == {"dcterms:title": ["A"], "dcterms:creator": ["x"]}


def test_dry_run(client):
    result = _post(client, query="?dry_run=1").get_json()
    assert result["summary"]["created"] == 2
    assert client.get("/api/v1/records").get_json()["total"] == 0


@pytest.mark.parametrize("spec", [
    {"action": "update"},
    {"rows_by_batch": 0},
    {"column-media_source": {"0": "sideload"}},
])
def test_bad_spec_is_400(client, spec):
    resp = _post(client, spec=spec)
    assert resp.status_code == 400
    assert resp.get_json()["code"] == "configuration"


def test_spec_must_be_json_object(client):
    resp = client.post("/api/v1/imports", data={
        "file": (io.BytesIO(CSV), "data.csv"), "spec": "[1, 2]",
    }, content_type="multipart/form-data")
    assert resp.status_code == 400


def test_missing_or_empty_file(client):
    resp = client.post("/api/v1/imports", data={}, content_type="multipart/form-data")
    assert resp.status_code == 400
    assert _post(client, body=b"").status_code == 400


def test_async_import(client):
    resp = _post(client, query="?async=1")
    assert resp.status_code == 202
    run_id = resp.get_json()["id"]
    assert wait_job(run_id, timeout=30)

    run = client.get(f"/api/v1/imports/{run_id}").get_json()
    assert run["status"] == "completed"
    assert run["report"]["summary"]["created"] == 2

    listing = client.get("/api/v1/imports").get_json()
    assert listing["total"] == 1
    assert listing["imports"][0]["id"] == run_id


def test_cancel_finished_import_is_409(client):
    run_id = _post(client).get_json()["id"]
    assert client.delete(f"/api/v1/imports/{run_id}").status_code == 409


def test_unknown_import_and_record(client):
    assert client.get("/api/v1/imports/999").status_code == 404
    assert client.get("/api/v1/records/999").status_code == 404


def test_properties_listed(client):
    terms = [p["term"] for p in client.get("/api/v1/properties").get_json()]
    assert "dcterms:title" in terms
    assert terms == sorted(terms)
