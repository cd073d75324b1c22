import logging
import os
import secrets
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from passlib.context import CryptContext
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from db import SessionDep
from errors import AuthError, AuthorizationError, ConflictError
from models import User
from schemas import AuthResponse, LoginData, UserCreate, UserRead

logger = logging.getLogger("SkillSwap.auth")

router = APIRouter(tags=["auth"])

SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    logger.warning(
        "SECRET_KEY is not set; using a random key, issued tokens will not survive a restart"
    )
    SECRET_KEY = secrets.token_hex(32)

TOKEN_MAX_AGE_SECONDS = 60 * 60 * 24
serializer = URLSafeTimedSerializer(SECRET_KEY, salt="skillswap-session")


pwd_context = CryptContext(
    schemes=["pbkdf2_sha256"],
    deprecated="auto",
)

bearer_scheme = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_session_token(user_id: int, email: str) -> str:
    """
    Store user_id + email in the signed token.
    Example data:
        {"user_id": 3, "email": "ana@example.com"}
    """
    return serializer.dumps({"user_id": user_id, "email": email})


def verify_session_token(token: str, max_age_seconds: int = TOKEN_MAX_AGE_SECONDS) -> dict:
    """
    Returns the token payload {'user_id': ..., 'email': ...}.
    Raises AuthError if the token is expired or the signature does not match.
    """
    try:
        return serializer.loads(token, max_age=max_age_seconds)
    except SignatureExpired:
        raise AuthError("Token has expired")
    except BadSignature:
        raise AuthError("Invalid token")


def issue_auth_response(user: User, message: str, is_admin: bool = False) -> AuthResponse:
    if user.id is None:
        raise RuntimeError("User has no ID in database")
    return AuthResponse(
        message=message,
        user=UserRead.model_validate(user),
        token=create_session_token(user.id, user.email),
        is_admin=is_admin,
    )


def get_user_by_email(session: Session, email: str) -> Optional[User]:
    return session.exec(select(User).where(User.email == email)).first()


def authenticate(session: Session, payload: LoginData) -> User:
    """
    Look up the user by email and check the password.
    Banned accounts are refused even with the right password.
    """
    user = get_user_by_email(session, payload.email)
    if user is None or not verify_password(payload.password, user.password_hash):
        logger.info("Failed login for %s", payload.email)
        raise AuthError("Invalid credentials")

    if user.is_banned:
        logger.info("Banned user %s tried to log in", user.id)
        raise AuthError("Account has been banned", status_code=status.HTTP_403_FORBIDDEN)

    return user


def get_current_user(
    session: SessionDep,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> User:
    """
    Reads the bearer token from the Authorization header, verifies it,
    and returns the matching User.
    """
    if credentials is None or not credentials.credentials:
        raise AuthError("Access token required")

    data = verify_session_token(credentials.credentials)
    user_id = data.get("user_id") if isinstance(data, dict) else None
    if not isinstance(user_id, int):
        raise AuthError("Invalid token")

    user = session.get(User, user_id)
    if user is None:
        raise AuthError("User not found for this token")

    if user.is_banned:
        raise AuthError("Account has been banned", status_code=status.HTTP_403_FORBIDDEN)

    return user


CurrentUserDep = Annotated[User, Depends(get_current_user)]


def require_admin(user: CurrentUserDep) -> User:
    if not user.is_admin:
        raise AuthorizationError("Admin access required")
    return user


AdminDep = Annotated[User, Depends(require_admin)]


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(user_in: UserCreate, session: SessionDep):
    """
    Register a new user with a hashed password and return a session token.
    """
    if get_user_by_email(session, user_in.email) is not None:
        raise ConflictError("User already exists")

    user = User(
        **user_in.model_dump(exclude={"password"}),
        password_hash=hash_password(user_in.password),
    )

    session.add(user)
    try:
        session.commit()
    except IntegrityError:
        # Lost a race against another registration with the same email
        session.rollback()
        raise ConflictError("User already exists")
    session.refresh(user)

    logger.info("Registered user %s (%s)", user.id, user.email)
    return issue_auth_response(user, "User created successfully")


@router.post("/login", response_model=AuthResponse)
def login(payload: LoginData, session: SessionDep):
    """
    Log in with email + password and get a bearer token valid for 24 hours.
    """
    user = authenticate(session, payload)
    return issue_auth_response(user, "Login successful", is_admin=user.is_admin)


@router.get("/me", response_model=UserRead)
def read_me(current: CurrentUserDep):
    """
    Get the currently logged-in user.
    """
    return current
