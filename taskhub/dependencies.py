"""
Reusable FastAPI dependencies.
"""
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from taskhub.database import get_db
from taskhub.exceptions import AuthenticationError
from taskhub.models import User
from taskhub.security import decode_access_token
from taskhub.services.user_store import UserStore

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the bearer token to an active user.

    Authentication happens here only; authorization is left to the
    access-control policies the routes call.
    """
    if credentials is None:
        raise AuthenticationError("Not authorized, no token")

    payload = decode_access_token(credentials.credentials)
    subject = payload.get("sub")
    try:
        user_id = int(subject)
    except (TypeError, ValueError) as exc:
        raise AuthenticationError("Invalid token") from exc

    user = UserStore(db).find_by_id(user_id)
    if user is None or not user.is_active:
        raise AuthenticationError("Not authorized, user not found")
    return user
