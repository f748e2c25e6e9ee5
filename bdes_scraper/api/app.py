"""
FastAPI application exposing BDES permit lookups as background jobs.

A client uploads a company list, polls the job while the scraper walks the
portal target by target, then downloads the xlsx report. Jobs live in
process memory and are lost on restart.
"""

from datetime import datetime
from typing import Dict, List, Optional
from uuid import uuid4

from fastapi import BackgroundTasks, FastAPI, File, HTTPException, UploadFile
from fastapi.responses import Response
from loguru import logger

from bdes_reports import generate_report, parse_input_file
from bdes_scraper.schemas import JobCreated, JobState, JobStatus, PermitResult, StepRecord, Target
from bdes_scraper.scrapers.bdes.scraper import BdesPermitScraper


XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


class JobStore:
    """In-memory job states and generated reports."""

    def __init__(self) -> None:
        self._jobs: Dict[str, JobState] = {}
        self._reports: Dict[str, bytes] = {}

    def create(self, total: int) -> JobState:
        job = JobState(job_id=uuid4().hex, total=total)
        self._jobs[job.job_id] = job
        return job

    def get(self, job_id: str) -> Optional[JobState]:
        return self._jobs.get(job_id)

    def update(self, job_id: str, **changes) -> JobState:
        job = self._jobs[job_id].model_copy(update={**changes, "updated_at": datetime.now()})
        self._jobs[job_id] = job
        return job

    def set_report(self, job_id: str, content: bytes) -> None:
        self._reports[job_id] = content

    def get_report(self, job_id: str) -> Optional[bytes]:
        return self._reports.get(job_id)


jobs = JobStore()


async def process_job(job_id: str, targets: List[Target]) -> None:
    """Scrape every target of a job, then store its report.

    Any failure marks the job as ``error``; the browser is always closed.
    """
    scraper = BdesPermitScraper()
    results: List[PermitResult] = []
    started = 0

    def on_progress(_: float, company: str) -> None:
        nonlocal started
        started += 1
        jobs.update(job_id, processed=started, current_company=company)

    def on_step(record: StepRecord) -> None:
        jobs.update(
            job_id,
            current_step=record.step,
            current_step_status=record.status,
            current_step_message=record.message,
        )

    def on_result(result: PermitResult) -> None:
        results.append(result)
        jobs.update(job_id, results=list(results))
        logger.info(f"Job {job_id}: {result.company} -> {result.status.value}")

    try:
        await scraper.initialize()
        await scraper.scrape_batch(targets, on_progress=on_progress, on_step_update=on_step, on_result=on_result)
        jobs.set_report(job_id, generate_report(results))
        jobs.update(job_id, status=JobStatus.COMPLETED, processed=len(targets), completed_at=datetime.now())
        logger.info(f"Job {job_id} completed ({len(results)} results)")
    except Exception as e:
        logger.exception(f"Job {job_id} failed")
        jobs.update(job_id, status=JobStatus.ERROR, error=str(e))
    finally:
        await scraper.close()


# Create FastAPI application instance
app = FastAPI(
    title="BDES Permits API",
    description="Batch lookups of the latest delivered building permit on the Wallonia BDES portal",
    version="0.1.0"
)


@app.get("/", tags=["Root"])
async def root():
    """Get available endpoints from app instance."""
    return {
        "message": "Welcome to BDES Permits API",
        "endpoints": [route.path for route in app.routes],
    }


@app.post("/jobs", tags=["Jobs"], response_model=JobCreated)
async def create_job(background_tasks: BackgroundTasks, file: UploadFile = File(...)) -> JobCreated:
    """Parse an uploaded company list and start scraping it in the background."""
    content = await file.read()
    try:
        targets = parse_input_file(content, file.filename or "")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if not targets:
        raise HTTPException(status_code=400, detail="No companies found in file")

    job = jobs.create(total=len(targets))
    background_tasks.add_task(process_job, job.job_id, targets)
    logger.info(f"Job {job.job_id} created with {len(targets)} companies from {file.filename}")
    return JobCreated(job_id=job.job_id)


@app.get("/jobs/{job_id}", tags=["Jobs"], response_model=JobState)
async def get_job(job_id: str) -> JobState:
    """Return the progress, current step and results of a job."""
    job = jobs.get(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")
    return job


@app.get("/jobs/{job_id}/download", tags=["Jobs"])
async def download_report(job_id: str) -> Response:
    """Download the xlsx report of a completed job."""
    job = jobs.get(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")
    report = jobs.get_report(job_id)
    if job.status is not JobStatus.COMPLETED or report is None:
        raise HTTPException(status_code=400, detail="Job not completed or output not available")
    return Response(
        content=report,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="permit-results-{job_id}.xlsx"'},
    )
