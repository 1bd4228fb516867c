"""Public contact endpoint."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from app.core.config import Settings
from app.core.dependencies import get_app_settings
from app.services.contact.contracts import ContactSubmission, PipelineResult
from app.services.contact.errors import MissingField
from app.services.contact.pipeline import ContactPipeline
from app.utils.rate_limit import get_client_ip

logger = logging.getLogger(__name__)

router = APIRouter()


def get_contact_pipeline(settings: Settings = Depends(get_app_settings)) -> ContactPipeline:
    return ContactPipeline(settings)


@router.post("/contact")
async def submit_contact(
    request: Request,
    pipeline: ContactPipeline = Depends(get_contact_pipeline),
):
    try:
        body = await request.json()
    except ValueError:
        body = None

    if not isinstance(body, dict):
        error = MissingField("Request body must be a JSON object")
        result = PipelineResult(success=False, error=error.code, message=error.message)
        return JSONResponse(status_code=error.status_code, content=result.to_response())

    submission = ContactSubmission.model_validate(body)
    client_ip = get_client_ip(request, pipeline.settings.trusted_proxy_cidrs)
    outcome = await pipeline.run(submission, client_ip)
    return JSONResponse(status_code=outcome.status_code, content=outcome.result.to_response())
