from typing import Any

import httpx
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from kaeva.models import AnalyzeRequest, JobStatus, MediaRequest
from kaeva.pipeline import FactCheckPipeline
from kaeva.services.media_analyzer import analyze_media
from kaeva.services.ocr import extract_text
from kaeva.utils.exceptions import ExternalServiceError, NotFoundError, ValidationError

router = APIRouter(prefix="/api")

ENDPOINTS = [
    "/api/analyze",
    "/api/status/:id",
    "/api/result/:id",
    "/api/media",
    "/api/ocr",
    "/api/health",
]


def get_pipeline(request: Request) -> FactCheckPipeline:
    return request.app.state.pipeline


async def read_body(request: Request) -> dict[str, Any]:
    """Read a JSON or form body into a dict; anything else reads as empty."""
    content_type = request.headers.get("content-type", "")
    if "multipart/form-data" in content_type or "application/x-www-form-urlencoded" in content_type:
        form = await request.form()
        return {key: value for key, value in form.items() if isinstance(value, str)}
    try:
        body = await request.json()
    except ValueError:
        if "application/json" in content_type:
            raise ValidationError("Request body is not valid JSON")
        return {}
    return body if isinstance(body, dict) else {}


def _validate(model, body: dict[str, Any]):
    try:
        return model.model_validate(body)
    except PydanticValidationError as e:
        raise ValidationError(
            "Invalid request body", details={"errors": [err["msg"] for err in e.errors()]}
        ) from e


@router.post("/analyze", status_code=202)
async def analyze(request: Request, pipeline: FactCheckPipeline = Depends(get_pipeline)):
    body = _validate(AnalyzeRequest, await read_body(request))
    claim = (body.claim or "").strip()
    media_url = (body.media_url or "").strip() or None
    if not claim and not media_url:
        raise ValidationError("Please provide a claim text and/or mediaUrl.")

    analysis_id = await pipeline.submit(
        claim, media_url, body.platform or pipeline.settings.inference.default_platform
    )
    return JSONResponse(
        status_code=202, content={"analysisId": analysis_id, "status": JobStatus.PROCESSING.value}
    )


@router.get("/status/{analysis_id}")
async def status(analysis_id: str, pipeline: FactCheckPipeline = Depends(get_pipeline)):
    record = await pipeline.job_store.get(analysis_id)
    if record is None:
        raise NotFoundError(job_id=analysis_id)
    return {"status": record.status.value, "progress": record.progress}


@router.get("/result/{analysis_id}")
async def result(analysis_id: str, pipeline: FactCheckPipeline = Depends(get_pipeline)):
    record = await pipeline.job_store.get(analysis_id)
    if record is None:
        raise NotFoundError(job_id=analysis_id)
    if record.status != JobStatus.COMPLETE or record.result is None:
        message = record.error if record.status == JobStatus.ERROR else "Still processing"
        return JSONResponse(
            status_code=202,
            content={"status": record.status.value, "progress": record.progress, "message": message},
        )
    return record.result.to_wire()


@router.post("/media")
async def media(request: Request, pipeline: FactCheckPipeline = Depends(get_pipeline)):
    body = _validate(MediaRequest, await read_body(request))
    if not body.media_url:
        raise ValidationError("Please provide a mediaUrl.", field="mediaUrl")

    async with httpx.AsyncClient(transport=pipeline.transport) as client:
        analysis = await analyze_media(
            client, body.media_url, pipeline.settings.inference, body.platform
        )
    return analysis.to_wire()


@router.post("/ocr")
async def ocr(request: Request, pipeline: FactCheckPipeline = Depends(get_pipeline)):
    body = _validate(MediaRequest, await read_body(request))
    if not body.media_url:
        raise ValidationError("Please provide a mediaUrl.", field="mediaUrl")

    async with httpx.AsyncClient(transport=pipeline.transport) as client:
        extraction = await extract_text(client, body.media_url, pipeline.settings.inference)
    if extraction is None:
        raise ExternalServiceError("OCR failed", service_name="ocr")
    return extraction.to_wire()


@router.get("/health")
async def health(pipeline: FactCheckPipeline = Depends(get_pipeline)):
    settings = pipeline.settings
    return {
        "ok": True,
        "service": settings.app_name,
        "version": settings.app_version,
        "endpoints": ENDPOINTS,
        "inferenceService": settings.inference.base_url,
        "credentials": "configured" if settings.credentials_configured else "not configured",
        "generativeModel": {
            "model": settings.google.model,
            "apiKey": "configured" if settings.google.api_key else "not configured",
        },
        "capabilities": ["claim", "media", "ocr"],
        "jobStore": settings.jobs.backend.value,
    }
