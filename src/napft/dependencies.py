"""Shared FastAPI dependencies."""

from fastapi import Depends

from napft.config import Settings, get_settings
from napft.email.service import EmailService
from napft.redis_client import get_redis


def get_email_service(settings: Settings = Depends(get_settings)) -> EmailService:  # noqa: B008
    """Build the email service for one request; rate limiting applies when Redis is up."""
    try:
        redis = get_redis()
    except RuntimeError:
        redis = None
    return EmailService(settings, redis=redis)
