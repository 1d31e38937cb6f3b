"""Contact form endpoint: POST /api/contactus."""

from __future__ import annotations

from datetime import datetime, timezone

import structlog
from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from napft.contact.schemas import ContactRequest, ContactResponse
from napft.database import get_session
from napft.db.models import ContactSubmission
from napft.dependencies import get_email_service
from napft.email.service import EmailService
from napft.query.envelope import ApiResponse

logger = structlog.get_logger()

router = APIRouter(prefix="/api/contactus", tags=["Contact"])


@router.post("", status_code=201, response_model=ApiResponse[ContactResponse])
async def submit_contact_form(
    body: ContactRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_session),  # noqa: B008
    email_service: EmailService = Depends(get_email_service),  # noqa: B008
) -> ApiResponse[ContactResponse]:
    """Store the submission; the notification email is sent after the response."""
    submission = ContactSubmission(
        name=body.name,
        email=str(body.email),
        message=body.message,
        created_at=datetime.now(timezone.utc),
    )
    db.add(submission)
    await db.commit()
    logger.info("contact_submitted", submission_id=submission.id)

    background_tasks.add_task(email_service.send_contact_notification, body.name, str(body.email), body.message)
    return ApiResponse(
        data=ContactResponse.model_validate(submission),
        message="Thank you for contacting us. We will get back to you soon.",
    )
