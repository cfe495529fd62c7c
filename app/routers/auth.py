from fastapi import APIRouter, Depends, status
from typing import Optional

from app.exceptions import BadRequestError
from app.schemas.auth import Credentials
from app.services.identity_service import IdentityProvider, get_identity_provider

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _require_credentials(credentials: Optional[Credentials]) -> Credentials:
    if credentials is None or not credentials.email or not credentials.password:
        raise BadRequestError("Email and password are required.")
    return credentials


@router.post("/signup", status_code=status.HTTP_201_CREATED)
def signup(
    credentials: Optional[Credentials] = None,
    identity: IdentityProvider = Depends(get_identity_provider),
):
    """Register a new user with the identity provider"""
    credentials = _require_credentials(credentials)
    user = identity.sign_up(credentials.email, credentials.password)
    return {"user": user}


@router.post("/login")
def login(
    credentials: Optional[Credentials] = None,
    identity: IdentityProvider = Depends(get_identity_provider),
):
    """
    Password login.

    Returns the provider session; its `access_token` is the bearer token for every
    protected route.
    """
    credentials = _require_credentials(credentials)
    session = identity.sign_in(credentials.email, credentials.password)
    return {"session": session}
