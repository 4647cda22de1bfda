"""Authentication dependency for the REST routers.

Reads the bearer token from the Authorization header, verifies it with the
TokenService stored on ``app.state`` and returns the Principal. Raises
HTTPException 401 when the token is missing or invalid.
"""
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.errors import AuthRejected

from .schemas import Principal
from .service import TokenService

security = HTTPBearer(auto_error=False)


def get_token_service(request: Request) -> TokenService:
    return request.app.state.tokens


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    tokens: TokenService = Depends(get_token_service),
) -> Principal:
    """Extract and validate the user from the bearer token."""
    try:
        return tokens.verify(credentials.credentials if credentials else None)
    except AuthRejected as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.message,
            headers={"WWW-Authenticate": "Bearer"},
        )
