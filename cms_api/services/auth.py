from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
from jose import JWTError, jwt
from sqlalchemy import func, select

from cms_api.core.config import JWT_ALGORITHM, JWT_EXPIRE_MINUTES, JWT_SECRET_KEY
from cms_api.core.database import Database
from cms_api.core.errors import UnauthorizedError
from cms_api.models.user import User
from cms_api.schemas.auth import LoginResponse, UserSummary

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS_MESSAGE = "Invalid email or password"


# =========================
# PASSWORD (bcrypt)
# =========================
def _normalize_password_for_bcrypt(password: str) -> bytes:
    """bcrypt only looks at the first 72 bytes; newer releases refuse longer input."""
    pw = (password or "").encode("utf-8")
    return pw[:72]


def hash_password(password: str) -> str:
    hashed = bcrypt.hashpw(_normalize_password_for_bcrypt(password), bcrypt.gensalt())
    return hashed.decode("utf-8")


def verify_password(plain_password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(
            _normalize_password_for_bcrypt(plain_password),
            (password_hash or "").encode("utf-8"),
        )
    except ValueError:
        # malformed hash stored for the user
        return False


# compared against when the email is unknown, so both paths pay for one bcrypt check
_DUMMY_HASH = hash_password("not-a-real-password")


# =========================
# JWT
# =========================
def create_access_token(
    user_id: int | str,
    email: str,
    expires_minutes: int = JWT_EXPIRE_MINUTES,
    extra: Optional[Dict[str, Any]] = None,
) -> str:
    now = datetime.now(timezone.utc)
    exp = now + timedelta(minutes=expires_minutes)

    # "sub" must be a string for python-jose
    payload: Dict[str, Any] = {
        "sub": str(user_id),
        "email": email,
        "iat": int(now.timestamp()),
        "exp": int(exp.timestamp()),
    }
    if extra:
        payload.update(extra)

    return jwt.encode(payload, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> Dict[str, Any]:
    """Return the token payload or raise UnauthorizedError if it is invalid or expired."""
    try:
        return jwt.decode(token, JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except JWTError as exc:
        raise UnauthorizedError("Invalid or expired token") from exc


class AuthService:
    def __init__(self, database: Database) -> None:
        self.database = database

    def find_user_by_email(self, email: str) -> User | None:
        with self.database.scope() as session:
            stmt = select(User).where(func.lower(User.email) == email.strip().lower())
            return session.execute(stmt).scalars().first()

    def find_user_by_id(self, user_id: int) -> User | None:
        with self.database.scope() as session:
            return session.get(User, user_id)

    def login(self, email: str, password: str) -> LoginResponse:
        user = self.find_user_by_email(email)
        hash_to_compare = user.password_hash if user is not None else _DUMMY_HASH
        password_ok = verify_password(password, hash_to_compare)

        if user is None or not password_ok:
            logger.info("login rejected email=%s", email.strip().lower())
            raise UnauthorizedError(INVALID_CREDENTIALS_MESSAGE)

        token = create_access_token(user.id, user.email)
        logger.info("login succeeded user_id=%s", user.id)
        return LoginResponse(
            token=token,
            expires_in=JWT_EXPIRE_MINUTES * 60,
            user=UserSummary(id=user.id, name=user.name, email=user.email),
        )

    def ensure_user(self, *, name: str, email: str, password: str) -> tuple[User, bool]:
        """Create the user unless the email is already taken. Returns (user, created)."""
        existing = self.find_user_by_email(email)
        if existing is not None:
            return existing, False

        user = User(name=name, email=email.strip().lower(), password_hash=hash_password(password))
        with self.database.transaction() as tx:
            tx.add(user)
            tx.flush()
            tx.refresh(user)
        logger.info("user created id=%s email=%s", user.id, user.email)
        return user, True
