"""
Subscription routes: verification, manual updates, PayLinks and billing-provider writes
"""

from fastapi import APIRouter, Depends, Query

from scale_api.models.requests import (
    CancelRequest,
    ChangePlanRequest,
    CheckoutRequest,
    SubscriptionUpdateRequest,
    VerifyPaymentRequest,
    VerifyRequest,
)
from scale_api.services import reconciler
from scale_api.services.subscription_service import SubscriptionService, get_subscription_service
from scale_api.services.tier_policy import parse_tier
from scale_api.utils.errors import ValidationError
from scale_api.utils.serializers import user_detail

router = APIRouter()

PURCHASE_INSTRUCTIONS = [
    "1. Click the payment link to open the checkout page",
    "2. Complete your payment",
    "3. Return to VS Code and run \"Scale: Verify Subscription\"",
    "4. Your subscription will be activated automatically",
]


@router.post("/verify")
async def verify_subscription(
    body: VerifyRequest,
    service: SubscriptionService = Depends(get_subscription_service),
):
    user, valid = await service.verify(body.user_id, body.extension_version, body.source)
    return {"valid": valid, "user": user_detail(user, reconciler.is_trial_active(user))}


@router.put("/update/{user_id}")
async def update_subscription(
    user_id: str,
    body: SubscriptionUpdateRequest,
    service: SubscriptionService = Depends(get_subscription_service),
):
    user = await service.update(
        user_id,
        body.tier,
        body.status,
        body.billing_subscription_id,
        body.billing_customer_id,
    )
    return {"success": True, "user": user_detail(user, reconciler.is_trial_active(user))}


@router.get("/purchase/{tier}")
async def purchase_link(
    tier: str,
    user_id: str | None = Query(None, alias="userId"),
    service: SubscriptionService = Depends(get_subscription_service),
):
    parsed = parse_tier(tier)
    if not user_id:
        raise ValidationError("User ID is required")
    return {
        "success": True,
        "paymentUrl": service.purchase_link(parsed, user_id),
        "tier": parsed.value,
        "message": "Complete payment and return to VS Code to verify subscription",
        "instructions": PURCHASE_INSTRUCTIONS,
    }


@router.post("/verify-payment")
async def verify_payment(
    body: VerifyPaymentRequest,
    service: SubscriptionService = Depends(get_subscription_service),
):
    user = await service.verify_payment(body.user_id, body.tier, body.transaction_id, body.email)
    return {
        "success": True,
        "message": "Subscription verified and activated successfully",
        "user": user_detail(user, reconciler.is_trial_active(user)),
    }


@router.post("/cancel/{user_id}")
async def cancel_subscription(
    user_id: str,
    body: CancelRequest | None = None,
    service: SubscriptionService = Depends(get_subscription_service),
):
    user = await service.cancel(user_id, body.reason if body else None)
    return {"success": True, "user": user_detail(user, reconciler.is_trial_active(user))}


@router.post("/change-plan/{user_id}")
async def change_plan(
    user_id: str,
    body: ChangePlanRequest,
    service: SubscriptionService = Depends(get_subscription_service),
):
    user = await service.change_plan(user_id, body.tier)
    return {"success": True, "user": user_detail(user, reconciler.is_trial_active(user))}


@router.post("/checkout")
async def create_checkout(
    body: CheckoutRequest,
    service: SubscriptionService = Depends(get_subscription_service),
):
    url = await service.create_checkout(body.user_id, body.tier, str(body.email))
    return {"checkoutUrl": url, "tier": body.tier.value}


@router.get("/{user_id}")
async def get_subscription(
    user_id: str,
    service: SubscriptionService = Depends(get_subscription_service),
):
    user = await service.get_user_or_404(user_id)
    return {"user": user_detail(user, reconciler.is_trial_active(user))}
