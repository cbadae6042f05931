"""Registration, login and current-user endpoints"""
import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from taskhub.database import commit, get_db
from taskhub.dependencies import get_current_user
from taskhub.exceptions import AuthenticationError, ConflictError, ValidationError
from taskhub.models import User
from taskhub.schemas import Token, UserCreate, UserLogin, UserResponse, UserSummary
from taskhub.security import create_access_token, hash_password, verify_password
from taskhub.services.user_store import UserStore, normalize_email

router = APIRouter()

logger = logging.getLogger("taskhub.api.auth")


def _issue_token(user: User) -> Token:
    access_token = create_access_token(data={"sub": str(user.id)})
    return Token(access_token=access_token, user=UserSummary.model_validate(user))


@router.post("/register", response_model=Token, status_code=status.HTTP_201_CREATED)
def register(
    user_data: UserCreate,
    db: Session = Depends(get_db),
):
    """Create an account and return an access token for it."""
    name = user_data.name.strip()
    if not name:
        raise ValidationError("Please provide a name")

    users = UserStore(db)
    if users.find_by_email(user_data.email) is not None:
        raise ConflictError("User already exists with this email")

    user = User(
        name=name,
        email=normalize_email(user_data.email),
        password_hash=hash_password(user_data.password),
    )
    db.add(user)
    commit(db, "registration", conflict_message="User already exists with this email")
    db.refresh(user)

    logger.info("Registered user %s", user.id)
    return _issue_token(user)


@router.post("/login", response_model=Token)
def login(
    credentials: UserLogin,
    db: Session = Depends(get_db),
):
    user = UserStore(db).find_by_email(credentials.email)
    if user is None or not verify_password(credentials.password, user.password_hash):
        raise AuthenticationError("Invalid email or password")
    if not user.is_active:
        raise AuthenticationError("Account is disabled")
    return _issue_token(user)


@router.get("/me", response_model=UserResponse)
def read_current_user(current_user: User = Depends(get_current_user)):
    return current_user
