from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from sqlalchemy.orm import Session, sessionmaker

from shiori.api.deps import get_bookmeter_client, get_import_jobs, get_import_pacing
from shiori.core.database import get_session_factory
from shiori.schemas.imports import BookmeterImportRequest, ImportProgressResponse, ImportStatus
from shiori.services.catalog_client import BookmeterClient
from shiori.services.import_service import (
    ImportJob,
    ImportJobRegistry,
    progress_as_dict,
    run_import_job,
)
from shiori.services.pacing import PacingPolicy

router = APIRouter()


def _to_status(job: ImportJob) -> ImportStatus:
    return ImportStatus(
        import_id=job.import_id,
        user_id=job.user_id,
        status=job.status,
        message=job.message,
        progress=ImportProgressResponse(**progress_as_dict(job.progress)),
        error=job.error,
        started_at=job.started_at,
        completed_at=job.completed_at,
    )


@router.post("/bookmeter", response_model=ImportStatus)
async def start_bookmeter_import(
    body: BookmeterImportRequest,
    background_tasks: BackgroundTasks,
    jobs: ImportJobRegistry = Depends(get_import_jobs),
    client: BookmeterClient = Depends(get_bookmeter_client),
    session_factory: sessionmaker[Session] = Depends(get_session_factory),
    pacing: PacingPolicy = Depends(get_import_pacing),
):
    """
    Import every book on a Bookmeter user's read shelf.

    The user id is the number in bookmeter.com/users/[USER_ID]. New books are
    saved as finished manga; books already in the library are skipped.
    """
    user_id = body.user_id.strip()
    if not user_id:
        raise HTTPException(status_code=400, detail="User id must not be empty")

    try:
        job = jobs.create(user_id)
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e

    background_tasks.add_task(
        run_import_job,
        job=job,
        client=client,
        session_factory=session_factory,
        pacing=pacing,
    )

    return _to_status(job)


@router.get("/status/{import_id}", response_model=ImportStatus)
async def get_import_status(
    import_id: str,
    jobs: ImportJobRegistry = Depends(get_import_jobs),
):
    """Check the status of an import job."""
    job = jobs.get(import_id)
    if not job:
        raise HTTPException(status_code=404, detail="Import not found")
    return _to_status(job)


@router.post("/{import_id}/cancel", response_model=ImportStatus)
async def cancel_import(
    import_id: str,
    jobs: ImportJobRegistry = Depends(get_import_jobs),
):
    """Stop an import before its next page fetch."""
    job = jobs.cancel(import_id)
    if not job:
        raise HTTPException(status_code=404, detail="Import not found")
    return _to_status(job)


@router.get("/history", response_model=list[ImportStatus])
async def get_import_history(
    limit: int = 10,
    jobs: ImportJobRegistry = Depends(get_import_jobs),
):
    """List recent import jobs, newest first."""
    return [_to_status(job) for job in jobs.history(limit)]
