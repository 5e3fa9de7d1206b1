"""
Billing provider webhooks
"""

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from loguru import logger

from scale_api.security.signature import SIGNATURE_HEADER
from scale_api.services.webhook_service import WebhookService, get_webhook_service
from scale_api.utils.errors import AppError, MissingUserReferenceError, UserNotFoundError

router = APIRouter()


@router.post("/billing/subscription")
async def billing_subscription_webhook(
    request: Request,
    service: WebhookService = Depends(get_webhook_service),
):
    """Subscription and payment lifecycle events.

    Signature and payload errors are answered with their own status; failures
    while applying the event are logged and acknowledged (the provider owns
    redelivery).
    """
    payload = await request.body()
    event = service.parse(payload, request.headers.get(SIGNATURE_HEADER))

    try:
        await service.apply_event(event)
    except (MissingUserReferenceError, UserNotFoundError) as e:
        logger.error(f"Webhook {event.type} not applied: {e.message}")
    except AppError as e:
        logger.error(f"Webhook {event.type} processing failed: {e.message}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Webhook processing failed", "message": e.message},
        )

    return {"received": True}
