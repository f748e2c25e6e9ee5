"""Test the jobs API."""

from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from bdes_scraper.api import app as app_module
from bdes_scraper.schemas import JobStatus, OutcomeStatus, PermitResult, StepStatus


CSV_CONTENT = "Entreprise,Adresse\nAlpha,Rue A 1 Herve\nBeta,Rue B 2 Liège\n".encode("utf-8")


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr(app_module, "jobs", app_module.JobStore())
    return TestClient(app_module.app)


def upload(client, content=CSV_CONTENT, filename="companies.csv"):
    return client.post("/jobs", files={"file": (filename, content, "text/csv")})


def test_job_completes_and_report_downloads(client, monkeypatch):
    received = {}

    async def fake_process_job(job_id, targets):
        received["targets"] = targets
        store = app_module.jobs
        store.update(job_id, current_step="Navigate to portal", current_step_status=StepStatus.PENDING)
        results = [PermitResult(company=t.company, address=t.address, status=OutcomeStatus.SUCCESS,
                                latest_permit_date="15/06/2022") for t in targets]
        store.set_report(job_id, app_module.generate_report(results))
        store.update(job_id, status=JobStatus.COMPLETED, processed=len(targets), results=results,
                     completed_at=datetime.now())

    monkeypatch.setattr(app_module, "process_job", fake_process_job)

    response = upload(client)
    assert response.status_code == 200
    job_id = response.json()["job_id"]
    assert [t.company for t in received["targets"]] == ["Alpha", "Beta"]

    job = client.get(f"/jobs/{job_id}").json()
    assert job["status"] == "completed"
    assert job["total"] == 2
    assert job["processed"] == 2
    assert job["current_step"] == "Navigate to portal"
    assert [r["latest_permit_date"] for r in job["results"]] == ["15/06/2022", "15/06/2022"]

    download = client.get(f"/jobs/{job_id}/download")
    assert download.status_code == 200
    assert download.headers["content-type"] == app_module.XLSX_MEDIA_TYPE
    assert f"permit-results-{job_id}.xlsx" in download.headers["content-disposition"]
    assert download.content[:2] == b"PK"


def test_download_before_completion_is_rejected(client, monkeypatch):
    async def idle(job_id, targets):
        return None

    monkeypatch.setattr(app_module, "process_job", idle)
    job_id = upload(client).json()["job_id"]

    assert client.get(f"/jobs/{job_id}").json()["status"] == "processing"
    response = client.get(f"/jobs/{job_id}/download")
    assert response.status_code == 400


def test_unknown_job_is_404(client):
    assert client.get("/jobs/missing").status_code == 404
    assert client.get("/jobs/missing/download").status_code == 404


def test_file_without_companies_is_rejected(client):
    response = upload(client, content="Entreprise,Adresse\n,\n".encode("utf-8"))
    assert response.status_code == 400
    assert response.json()["detail"] == "No companies found in file"


def test_file_without_headers_is_rejected(client):
    response = upload(client, content="Foo,Bar\n1,2\n".encode("utf-8"))
    assert response.status_code == 400
    assert "Could not find 'Company' and 'Address' columns" in response.json()["detail"]


@pytest.mark.asyncio
async def test_process_job_marks_failures_and_closes_the_scraper(monkeypatch):
    store = app_module.JobStore()
    monkeypatch.setattr(app_module, "jobs", store)
    closed = []

    class FailingScraper:
        async def initialize(self):
            raise RuntimeError("browser launch failed")

        async def close(self):
            closed.append(True)

    monkeypatch.setattr(app_module, "BdesPermitScraper", FailingScraper)
    job = store.create(total=1)

    await app_module.process_job(job.job_id, [])

    state = store.get(job.job_id)
    assert state.status == JobStatus.ERROR
    assert state.error == "browser launch failed"
    assert closed == [True]
