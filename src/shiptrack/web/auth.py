"""Admin authentication with HS256 JWTs carried in a header or cookie."""

import hmac
import logging
from datetime import timedelta
from functools import wraps
from typing import Any, Dict, Optional

import jwt
from flask import current_app, g, request

from ..config import AuthConfig
from ..exceptions import AuthenticationError
from ..models import utcnow

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


def check_credentials(config: AuthConfig, username: str, password: str) -> bool:
    """Constant-time comparison against the configured admin account."""
    user_ok = hmac.compare_digest(username.encode(), config.admin_username.encode())
    password_ok = hmac.compare_digest(password.encode(), config.admin_password.encode())
    return user_ok and password_ok


def issue_token(config: AuthConfig, username: str) -> str:
    now = utcnow()
    payload = {
        "username": username,
        "authenticated": True,
        "iat": now,
        "exp": now + timedelta(hours=config.token_ttl_hours),
    }
    return jwt.encode(payload, config.secret_key, algorithm=ALGORITHM)


def verify_token(config: AuthConfig, token: str) -> Dict[str, Any]:
    """Decode ``token``; raises AuthenticationError when it is bad or expired."""
    try:
        claims = jwt.decode(token, config.secret_key, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError as e:
        logger.info("Rejected expired admin token")
        raise AuthenticationError("Invalid token", cause=e)
    except jwt.PyJWTError as e:
        logger.info(f"Rejected admin token: {e}")
        raise AuthenticationError("Invalid token", cause=e)

    if not claims.get("authenticated") or not claims.get("username"):
        raise AuthenticationError("Invalid token")
    return claims


def request_token(cookie_name: str) -> Optional[str]:
    """The bearer token if present, else the auth cookie."""
    header = request.headers.get("Authorization", "")
    if header.startswith("Bearer "):
        token = header[len("Bearer "):].strip()
        if token:
            return token
    return request.cookies.get(cookie_name) or None


def current_claims() -> Optional[Dict[str, Any]]:
    """Claims of the caller, or None; never raises."""
    config: AuthConfig = current_app.settings.auth
    token = request_token(config.cookie_name)
    if not token:
        return None
    try:
        return verify_token(config, token)
    except AuthenticationError:
        return None


def require_auth(view):
    """Reject the request with 401 unless it carries a valid admin token."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        config: AuthConfig = current_app.settings.auth
        token = request_token(config.cookie_name)
        if not token:
            raise AuthenticationError("Authentication required")
        g.user = verify_token(config, token)
        return view(*args, **kwargs)

    return wrapper
