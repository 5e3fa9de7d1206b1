"""
Token routes for the extension
"""

from fastapi import APIRouter, Depends
from loguru import logger

from scale_api.dependencies.auth import get_current_claims, get_token_service
from scale_api.models.requests import RefreshRequest, TokenRequest
from scale_api.security.jwt import TokenService
from scale_api.services.subscription_service import SubscriptionService, get_subscription_service
from scale_api.utils.serializers import user_summary

router = APIRouter()


@router.post("/token")
async def issue_token(
    body: TokenRequest,
    service: SubscriptionService = Depends(get_subscription_service),
    tokens: TokenService = Depends(get_token_service),
):
    """Find or create the user and hand out a token"""
    user = await service.ensure_user(
        body.user_id,
        extension_version=body.extension_version,
        installation_id=body.installation_id,
    )
    token = tokens.generate_token(user.user_id, user.email)
    return {"success": True, "token": token, "user": user_summary(user)}


@router.post("/refresh")
async def refresh_token(
    body: RefreshRequest,
    service: SubscriptionService = Depends(get_subscription_service),
    tokens: TokenService = Depends(get_token_service),
):
    user = await service.touch(body.user_id)
    token = tokens.generate_token(user.user_id, user.email)
    logger.debug(f"Token refreshed for {user.user_id}")
    return {"success": True, "token": token, "user": user_summary(user)}


@router.get("/me")
async def me(
    claims: dict = Depends(get_current_claims),
    service: SubscriptionService = Depends(get_subscription_service),
):
    user = await service.get_user_or_404(claims["userId"])
    return {"user": user_summary(user)}
