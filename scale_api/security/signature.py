"""
Webhook signature verification (HMAC-SHA256 over the raw body)
"""

import hashlib
import hmac

from loguru import logger

from scale_api.config import Settings
from scale_api.utils.errors import InternalError, WebhookSignatureError

SIGNATURE_HEADER = "X-Billing-Signature"


def compute_signature(payload: bytes, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


class WebhookVerifier:
    def __init__(self, settings: Settings):
        self._secret = settings.BILLING_WEBHOOK_SECRET

    def verify(self, payload: bytes, signature: str | None) -> None:
        """Raise unless ``signature`` is the hex HMAC of ``payload``"""
        if not self._secret:
            logger.error("BILLING_WEBHOOK_SECRET not configured")
            raise InternalError("Webhook secret not configured")
        if not signature:
            logger.warning("Webhook received without signature")
            raise WebhookSignatureError("Missing signature")

        expected = compute_signature(payload, self._secret)
        if not hmac.compare_digest(expected.encode("ascii"), signature.strip().lower().encode("utf-8")):
            logger.warning("Invalid billing webhook signature")
            raise WebhookSignatureError()
