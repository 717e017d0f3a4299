# cms_api/deps.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer

from cms_api.core.config import API_PREFIX
from cms_api.core.database import Database
from cms_api.core.errors import UnauthorizedError
from cms_api.core.request_context import set_request_context
from cms_api.models.user import User
from cms_api.services.auth import AuthService, decode_access_token
from cms_api.services.customers import CustomerService
from cms_api.services.reference import ReferenceValidator

# the "Authorize" button of the interactive docs posts to this endpoint
oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{API_PREFIX}/auth/token", auto_error=False)

logger = logging.getLogger(__name__)


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_customer_service(database: Database = Depends(get_database)) -> CustomerService:
    return CustomerService(database)


def get_reference_validator(database: Database = Depends(get_database)) -> ReferenceValidator:
    return ReferenceValidator(database)


def get_auth_service(database: Database = Depends(get_database)) -> AuthService:
    return AuthService(database)


def _extract_user_id(payload: Dict[str, Any]) -> Optional[int]:
    raw = payload.get("sub")
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str) and raw.strip().isdigit():
        return int(raw.strip())
    return None


def require_user(
    request: Request,
    token: Optional[str] = Depends(oauth2_scheme),
    auth: AuthService = Depends(get_auth_service),
) -> User:
    """Resolve the bearer token to a stored user or answer 401."""
    if not token:
        raise UnauthorizedError("No token provided")

    payload = decode_access_token(token)
    user_id = _extract_user_id(payload)
    if user_id is None:
        raise UnauthorizedError("Invalid or expired token")

    user = auth.find_user_by_id(user_id)
    if user is None:
        logger.warning("token for unknown user user_id=%s", user_id)
        raise UnauthorizedError("Invalid or expired token")

    request.state.user = user
    set_request_context(user_id=str(user.id))
    return user
