from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.exceptions import UnauthenticatedError
from app.schemas.auth import CurrentUser
from app.services.identity_service import IdentityProvider, get_identity_provider

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    identity: IdentityProvider = Depends(get_identity_provider),
) -> CurrentUser:
    """Gate for every protected route: resolve the bearer token or fail with 401."""
    if credentials is None or not credentials.credentials:
        raise UnauthenticatedError("Authentication required. No token provided.")

    user = identity.verify_token(credentials.credentials)
    request.state.user = user
    return user
