"""Lookup of users referenced by membership and assignment requests."""
from typing import Optional

from sqlalchemy.orm import Session

from taskhub.exceptions import NotFoundError
from taskhub.models import User


def normalize_email(email: str) -> str:
    return email.strip().lower()


class UserStore:
    """Read access to users; absence is reported, never defaulted."""

    def __init__(self, db: Session):
        self.db = db

    def find_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == normalize_email(email)).first()

    def find_by_id(self, user_id: int) -> Optional[User]:
        return self.db.get(User, user_id)

    def get_by_email(self, email: str) -> User:
        user = self.find_by_email(email)
        if user is None:
            raise NotFoundError("User not found with this email")
        return user
