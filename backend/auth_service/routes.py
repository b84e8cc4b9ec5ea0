"""
Authentication service route handlers.

Provides routes for:
- User registration
- User login
- Profile retrieval and update (/me)
- Admin user listing and lookup
- Admin flag changes

JWT logic lives in `auth_service.utils`; request validation is declared per
route with `validation.checks`.
"""

import logging
from typing import Tuple

from flask import Blueprint, Response, current_app, g, jsonify

from backend.auth_service import users
from backend.auth_service.passwords import compare_passwords
from backend.auth_service.utils import create_token, require_admin, require_authentication
from backend.validation.checks import (
    AtLeastOneOf,
    CredentialsMatch,
    IsBoolean,
    Length,
    NotSelf,
    PAGING,
    ResourceExists,
    Trim,
    UsernameNotTaken,
)
from backend.validation.engine import RequestContext, validate

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__)

# --- VALIDATORS ---
USERNAME = Length("username", "username is required, max 256 characters", min=1, max=256)
NAME = Length("name", "name is required, max 256 characters", min=1, max=256, optional_on_patch=True)
PASSWORD = Length(
    "password",
    "password is required, min 1 characters, max 256 characters",
    min=1,
    max=256,
    optional_on_patch=True,
)


def _user_by_id(user_id, ctx):
    return users.find_by_id(user_id)


# --- REGISTER ---
@auth_bp.route("/register", methods=["POST"])
@validate(
    Trim("name"),
    USERNAME,
    NAME,
    PASSWORD,
    UsernameNotTaken(users.find_by_username),
)
def register(ctx: RequestContext) -> Tuple[Response, int]:
    """
    Register a new user.

    Expects a JSON or form body with:
    - username (str): Unique, 1-256 characters.
    - name (str): 1-256 characters.
    - password (str): 1-256 characters.

    Returns:
        201: The created user (never the password hash).
        400: Field errors, or username already exists.
    """
    try:
        user = users.create_user(ctx.body["username"], ctx.body["name"], ctx.body["password"])
    except users.UsernameTaken:
        return jsonify({"errors": [
            {"param": "username", "msg": "username already exists", "location": "body"}
        ]}), 400

    logger.info(f"[Auth] Registered user id={user['id']}")
    return jsonify(users.strip_password(user)), 201


# --- LOGIN ---
@auth_bp.route("/login", methods=["POST"])
@validate(
    USERNAME,
    PASSWORD,
    CredentialsMatch(users.find_by_username, compare_passwords),
)
def login(ctx: RequestContext) -> Tuple[Response, int]:
    """
    Authenticate a user and return a JWT.

    Returns:
        200: { user, token, expiresIn }
        400: Missing username or password.
        401: Username or password incorrect (same answer for both).
    """
    user = ctx.resources["user"]
    token = create_token(user["id"])

    return jsonify({
        "user": users.strip_password(user),
        "token": token,
        "expiresIn": current_app.config["TOKEN_LIFETIME"],
    }), 200


# --- CURRENT USER ---
@auth_bp.route("/me", methods=["GET"])
@require_authentication
def get_current_user() -> Tuple[Response, int]:
    """
    Profile of the caller.

    Requires Authorization header: Bearer <token>
    """
    user = users.find_by_id(g.user["id"])
    if not user:
        return jsonify({"error": "User not found"}), 404

    return jsonify(users.strip_password(user)), 200


@auth_bp.route("/me", methods=["PATCH"])
@require_authentication
@validate(
    Trim("name"),
    NAME,
    PASSWORD,
    AtLeastOneOf(["name", "password"]),
)
def update_current_user(ctx: RequestContext) -> Tuple[Response, int]:
    """
    Update the caller's name and/or password.

    Returns:
        200: Updated user.
        400: Field errors or nothing to update.
        404: User vanished between auth and update.
    """
    updated = users.update_user(
        ctx.user["id"],
        name=ctx.body.get("name") or None,
        password=ctx.body.get("password") or None,
    )

    if updated is False:
        return jsonify({"error": "Nothing to update"}), 400
    if updated is None:
        return jsonify({"error": "User not found"}), 404

    return jsonify(updated), 200


# --- ADMIN ONLY ---
@auth_bp.route("", methods=["GET"])
@require_admin
@require_authentication
@validate(*PAGING)
def list_users(ctx: RequestContext) -> Tuple[Response, int]:
    """
    Admin-only endpoint to list users.

    Query: offset (default 0), limit (default 50).
    """
    rows = users.list_users(ctx.query.get("offset", 0), ctx.query.get("limit", 50))
    return jsonify(rows), 200


@auth_bp.route("/<int:id>", methods=["GET"])
@require_admin
@validate(ResourceExists(_user_by_id))
def get_user(ctx: RequestContext, id: int) -> Tuple[Response, int]:
    """
    Admin-only endpoint to fetch one user.
    """
    return jsonify(users.strip_password(ctx.resource)), 200


@auth_bp.route("/<int:id>", methods=["PATCH"])
@require_admin
@validate(
    IsBoolean("admin"),
    NotSelf("id"),
    ResourceExists(_user_by_id),
)
def set_admin(ctx: RequestContext, id: int) -> Tuple[Response, int]:
    """
    Admin-only endpoint to grant or revoke admin.

    Expects JSON: { "admin": bool }. An admin can never change their own flag.

    Returns:
        200: Updated user.
        400: admin missing or not a boolean.
        403: Not an admin, or targeting self.
        404: No such user.
    """
    updated = users.set_admin(id, ctx.body["admin"])
    if not updated:
        return jsonify({"error": "User not found"}), 404

    logger.info(f"[Auth] User id={id} admin={updated['admin']} set by id={ctx.user['id']}")
    return jsonify(updated), 200
