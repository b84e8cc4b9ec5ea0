"""
Shared authentication helpers.
Provides token creation, verification, and the authentication/admin gates.
"""

import logging
from datetime import datetime, timedelta, timezone
from functools import wraps
from typing import Any, Callable, Dict, Optional, Tuple

import jwt
from flask import Response, current_app, g, jsonify, request

from backend.auth_service.users import find_by_id, strip_password

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


class InvalidToken(Exception):
    """Token signature does not verify, or the token has expired."""


# --- JWT CREATION ---
def issue_token(claims: Dict[str, Any], secret: str, expires_in: int) -> str:
    """
    Sign a set of claims.

    Args:
        claims (dict): Payload, e.g. {"id": 1}.
        secret (str): Signing key.
        expires_in (int): Lifetime in seconds.

    Returns:
        str: Encoded JWT string.
    """
    now = datetime.now(timezone.utc)
    payload = dict(claims)
    payload["iat"] = now
    payload["exp"] = now + timedelta(seconds=expires_in)
    return jwt.encode(payload, secret, algorithm=ALGORITHM)


def create_token(user_id: int) -> str:
    """Token for a user, signed with the deployment's secret and lifetime."""
    return issue_token(
        {"id": user_id},
        current_app.config["JWT_SECRET"],
        current_app.config["TOKEN_LIFETIME"],
    )


# --- JWT VALIDATION ---
def verify_token(token: str, secret: str) -> Dict[str, Any]:
    """
    Decode and verify a token.

    Raises:
        InvalidToken: If the signature is wrong, the token is malformed or
            it has expired.
    """
    try:
        return jwt.decode(token, secret, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError as e:
        raise InvalidToken("token expired") from e
    except jwt.InvalidTokenError as e:
        raise InvalidToken("invalid token") from e


def _deny(message: str, status: int) -> Tuple[Optional[Dict[str, Any]], Optional[Response], Optional[int]]:
    return None, jsonify({"error": message}), status


def resolve_identity() -> Tuple[Optional[Dict[str, Any]], Optional[Response], Optional[int]]:
    """
    Work out who is calling from the Authorization header.

    Runs at most once per request; later calls reuse the first answer.

    Returns:
        tuple: (user, error_response, status_code)
               If successful, error_response and status_code are None and
               `g.user` holds the caller (without password hash).
    """
    if "identity" in g:
        return g.identity

    g.identity = _resolve()
    g.user = g.identity[0]
    return g.identity


def _resolve() -> Tuple[Optional[Dict[str, Any]], Optional[Response], Optional[int]]:
    auth = request.headers.get("Authorization", "")

    if not auth.startswith("Bearer "):
        return _deny("missing token", 401)

    token = auth.split(" ", 1)[1].strip()

    try:
        claims = verify_token(token, current_app.config["JWT_SECRET"])
    except InvalidToken as e:
        return _deny(str(e), 401)

    user_id = claims.get("id")
    if user_id is None:
        return _deny("invalid token", 401)

    user = find_by_id(user_id)
    if not user:
        logger.info(f"[Auth] Token for unknown user id={user_id}")
        return _deny("invalid token", 401)

    return strip_password(user), None, None


# --- GATES ---
def require_authentication(fn: Callable) -> Callable:
    """Let the request through only with a valid bearer token."""

    @wraps(fn)
    def wrapper(*args: Any, **kwargs: Any):
        _, err, code = resolve_identity()
        if err is not None:
            return err, code
        return fn(*args, **kwargs)

    return wrapper


def require_admin(fn: Callable) -> Callable:
    """
    Let the request through only for an authenticated admin.

    Resolves identity itself, so it is safe with or without
    `require_authentication` and in either order.
    """

    @wraps(fn)
    def wrapper(*args: Any, **kwargs: Any):
        user, err, code = resolve_identity()
        if err is not None:
            return err, code
        if not user or user.get("admin") is not True:
            return jsonify({"error": "permission denied"}), 403
        return fn(*args, **kwargs)

    return wrapper
