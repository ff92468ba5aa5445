import logging

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from mealforge_import.app.api.deps import get_pipeline
from mealforge_import.app.schemas.imports import ImportHtmlRequest, ImportUrlRequest
from mealforge_import.app.services.extraction.models import ImportOutcome
from mealforge_import.app.services.extraction.pipeline import RecipeImportPipeline

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/imports", tags=["imports"])


def _bad_request(exc: ValueError) -> HTTPException:
    return HTTPException(
        status_code=400,
        detail={"error_code": "unsupported_source", "message": str(exc)},
    )


@router.post("/url", response_model=ImportOutcome)
async def import_from_url(
    payload: ImportUrlRequest,
    pipeline: RecipeImportPipeline = Depends(get_pipeline),
):
    try:
        return await pipeline.import_url(payload.url, hints=payload.hints)
    except ValueError as exc:
        raise _bad_request(exc)


@router.post("/html", response_model=ImportOutcome)
async def import_from_html(
    payload: ImportHtmlRequest,
    pipeline: RecipeImportPipeline = Depends(get_pipeline),
):
    try:
        return await pipeline.import_html(payload.html, source_url=payload.source_url)
    except ValueError as exc:
        raise _bad_request(exc)


@router.post("/video", response_model=ImportOutcome)
async def import_from_video(
    file: UploadFile = File(...),
    pipeline: RecipeImportPipeline = Depends(get_pipeline),
):
    """Upload a short cooking video; only the video-analysis provider handles these."""
    data = await file.read()
    logger.info("Received video upload %s (%d bytes)", file.filename, len(data))
    try:
        return await pipeline.import_video(file.filename or "", file.content_type, data)
    except ValueError as exc:
        raise _bad_request(exc)
