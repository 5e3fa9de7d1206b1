"""
Auth dependencies: bearer token verification
"""

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from loguru import logger

from scale_api.config import Settings, get_settings
from scale_api.security.jwt import TokenService
from scale_api.utils.errors import AuthError

security = HTTPBearer(auto_error=False)


def get_token_service(settings: Settings = Depends(get_settings)) -> TokenService:
    return TokenService(settings)


async def get_current_claims(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    tokens: TokenService = Depends(get_token_service),
) -> dict:
    if credentials is None:
        raise AuthError("No valid authorization token provided")
    token = (credentials.credentials or "").strip()
    # basic sanity check so placeholders never reach the decoder
    if not token or token.lower() in {"null", "undefined", "none"}:
        logger.warning("Empty or placeholder bearer token")
        raise AuthError("No valid authorization token provided")
    return tokens.verify_token(token)
