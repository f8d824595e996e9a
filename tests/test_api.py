import csv
import io

import numpy as np
import pytest
from fastapi.testclient import TestClient

from ecg_service.config import EcgConfig
from ecg_service.main import app, get_config, get_storage_dir
from ecg_service.store import SAMPLE_DTYPE

from conftest import FS, pulse_train


@pytest.fixture
def storage(tmp_path):
    (tmp_path / "night1.bin").write_bytes(pulse_train(90).astype(SAMPLE_DTYPE).tobytes())
    (tmp_path / "empty.bin").write_bytes(b"")
    (tmp_path / ".hidden").write_bytes(b"\x00\x00")
    (tmp_path / "subdir").mkdir()
    return tmp_path


@pytest.fixture
def client(storage):
    app.dependency_overrides[get_storage_dir] = lambda: str(storage)
    app.dependency_overrides[get_config] = lambda: EcgConfig(fs=FS)
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_list_records(client):
    names = [r["name"] for r in client.get("/ecg/records").json()]
    assert names == ["empty.bin", "night1.bin"]


def test_list_records_missing_dir(client, tmp_path):
    app.dependency_overrides[get_storage_dir] = lambda: str(tmp_path / "nowhere")
    assert client.get("/ecg/records").json() == []


def test_record_info(client):
    info = client.get("/ecg/records/night1.bin").json()
    assert info["total_samples"] == 90 * FS
    assert info["total_minutes"] == 2
    assert info["duration_hm"] == "00:01"


def test_missing_record_is_404(client):
    resp = client.get("/ecg/records/missing.bin/minute")
    assert resp.status_code == 404
    assert "missing.bin" in resp.json()["detail"]


def test_dotdot_rejected(client):
    assert client.get("/ecg/records/../minute").status_code in (400, 404)


def test_minute(client):
    body = client.get("/ecg/records/night1.bin/minute", params={"min": 2}).json()
    assert body["current_minute"] == 2
    assert body["total_minutes"] == 2
    assert len(body["samples"]) == 30 * FS
    assert body["summary"]["beat_count"] == len(body["beats"])


def test_minute_defaults_and_clamps(client):
    assert client.get("/ecg/records/night1.bin/minute").json()["current_minute"] == 1
    assert client.get("/ecg/records/night1.bin/minute", params={"min": 50}).json()["current_minute"] == 2


def test_empty_record_minute(client):
    body = client.get("/ecg/records/empty.bin/minute").json()
    assert body["samples"] == []
    assert body["total_minutes"] == 1


def test_page(client):
    page = client.get("/ecg/records/night1.bin/page", params={"min": 1, "source": "filtered"}).json()
    assert len(page["panels"]) == 6
    assert page["scale"]["hi"] > page["scale"]["lo"]
    assert len(page["panels"][0]["polyline"]) == 10 * FS


def test_page_rejects_unknown_source(client):
    assert client.get("/ecg/records/night1.bin/page", params={"source": "fft"}).status_code == 422


def test_page_png(client):
    resp = client.get("/ecg/records/night1.bin/page.png", params={"min": 2})
    assert resp.status_code == 200
    assert resp.headers["content-type"] == "image/png"
    assert resp.content.startswith(b"\x89PNG")


def test_export_csv(client):
    resp = client.get("/ecg/records/night1.bin/export.csv", params={"min": 2})
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/csv")
    rows = list(csv.reader(io.StringIO(resp.text)))
    assert rows[0] == ["global_sample_index", "sample_index_in_minute", "amplitude"]
    assert len(rows) == 1 + 30 * FS
    assert rows[1][:2] == [str(60 * FS), "0"]


def test_export_beats_only(client):
    resp = client.get("/ecg/records/night1.bin/export.csv", params={"min": 1, "beats_only": True})
    rows = list(csv.reader(io.StringIO(resp.text)))
    assert len(rows) == 1 + 60
    assert "beats" in resp.headers["content-disposition"]


def test_analysis(client):
    body = client.get("/ecg/records/night1.bin/analysis", params={"seconds": 30}).json()
    assert body["duration_s"] == 30.0
    assert body["summary"]["beat_count"] == 30
    assert len(body["rr_ms"]) == 29


def test_analyze_segment(client):
    payload = {
        "segment_id": "demo_1700000000000",
        "sampling_rate_hz": FS,
        "samples": pulse_train(8).tolist(),
    }
    body = client.post("/ecg/analyze", json=payload).json()
    assert body["segment_id"] == "demo_1700000000000"
    assert body["summary"]["beat_count"] == 8
    assert len(body["rr_intervals_ms"]) == 7


def test_analyze_rejects_out_of_range_samples(client):
    payload = {"segment_id": "x", "sampling_rate_hz": FS, "samples": [0, 40000]}
    assert client.post("/ecg/analyze", json=payload).status_code == 422
