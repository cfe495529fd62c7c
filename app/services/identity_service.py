"""
Identity provider access: signup, password login, token verification and user
lookup by email.
"""
import logging
from typing import Any, Dict, Optional

from fastapi import Depends
from fastapi.encoders import jsonable_encoder
from jose import JWTError, jwt
from supabase import AuthError

from app.config import settings
from app.exceptions import BadRequestError, IdentityProviderError, UnauthenticatedError
from app.schemas.auth import CurrentUser
from app.supabase_client import get_supabase

logger = logging.getLogger(__name__)

TOKEN_AUDIENCE = "authenticated"
USERS_PAGE_SIZE = 1000


class IdentityProvider:
    def __init__(self, client, jwt_secret: Optional[str] = None):
        self.client = client
        self.jwt_secret = jwt_secret

    def sign_up(self, email: str, password: str) -> Dict[str, Any]:
        try:
            response = self.client.auth.sign_up({"email": email, "password": password})
        except AuthError as e:
            raise BadRequestError(str(e)) from e
        except Exception as e:
            logger.error(f"Signup request failed: {e}")
            raise IdentityProviderError(str(e)) from e
        return jsonable_encoder(response.user)

    def sign_in(self, email: str, password: str) -> Dict[str, Any]:
        try:
            response = self.client.auth.sign_in_with_password({"email": email, "password": password})
        except AuthError as e:
            raise BadRequestError(str(e)) from e
        except Exception as e:
            logger.error(f"Login request failed: {e}")
            raise IdentityProviderError(str(e)) from e
        return jsonable_encoder(response.session)

    def verify_token(self, token: str) -> CurrentUser:
        """
        Resolve a bearer token to the user it was issued for.

        Tokens are checked locally against the project JWT secret when one is
        configured, otherwise the identity provider is asked directly.
        """
        if self.jwt_secret:
            try:
                claims = jwt.decode(
                    token, self.jwt_secret, algorithms=["HS256"], audience=TOKEN_AUDIENCE
                )
            except JWTError:
                raise UnauthenticatedError("Invalid or expired token.")
            user_id, email = claims.get("sub"), claims.get("email")
        else:
            try:
                response = self.client.auth.get_user(token)
            except Exception as e:
                logger.info(f"Token rejected by identity provider: {e}")
                raise UnauthenticatedError("Invalid or expired token.") from e
            user = response.user if response else None
            if user is None:
                raise UnauthenticatedError("Invalid or expired token.")
            user_id, email = user.id, user.email

        if not user_id:
            raise UnauthenticatedError("Invalid or expired token.")
        try:
            return CurrentUser(id=user_id, email=email)
        except ValueError:
            raise UnauthenticatedError("Invalid or expired token.")

    def find_user_by_email(self, email: str):
        """Page through every provider user and return the exact email match, if any."""
        page = 1
        while True:
            try:
                users = self.client.auth.admin.list_users(page=page, per_page=USERS_PAGE_SIZE)
            except Exception as e:
                logger.error(f"Listing users failed: {e}")
                raise IdentityProviderError(str(e)) from e

            for user in users:
                if user.email == email:
                    return user
            if len(users) < USERS_PAGE_SIZE:
                return None
            page += 1


def get_identity_provider(client=Depends(get_supabase)) -> IdentityProvider:
    return IdentityProvider(client, jwt_secret=settings.SUPABASE_JWT_SECRET)
