"""
Events service routes: create, read, update and delete events.
"""

import logging
from typing import Tuple

from flask import Blueprint, Response, jsonify

from backend.auth_service.utils import require_authentication
from backend.events_service import store
from backend.validation.checks import PAGING, Length, ResourceExists, ResourceNotExists, Trim
from backend.validation.engine import RequestContext, validate

logger = logging.getLogger(__name__)

events_bp = Blueprint("events", __name__)

# --- CONSTANTS FOR VALIDATION ---
NAME_MAX_LENGTH = 64
DESCRIPTION_MAX_LENGTH = 400


def _event_by_id(event_id, ctx):
    return store.find_event(event_id)


def _event_by_name(name, ctx):
    return store.find_event_by_slug(store.slugify(name))


def event_fields(text_field: str = "description") -> tuple:
    """Name and free-text checks shared by events and registrations."""
    return (
        Trim("name"),
        Trim(text_field),
        Length("name", "name must not be empty", min=1, optional_on_patch=True),
        Length("name", f"name may be at most {NAME_MAX_LENGTH} characters", max=NAME_MAX_LENGTH),
        Length(
            text_field,
            f"{text_field} may be at most {DESCRIPTION_MAX_LENGTH} characters",
            max=DESCRIPTION_MAX_LENGTH,
        ),
    )


def _slug_taken() -> Tuple[Response, int]:
    return jsonify({"errors": [
        {"param": "name", "msg": "already exists", "location": "body"}
    ]}), 400


@events_bp.route("", methods=["GET"])
@validate(*PAGING)
def list_events(ctx: RequestContext) -> Tuple[Response, int]:
    """
    Return events ordered by id.

    Query: offset (default 0), limit (default 50).
    """
    rows = store.list_events(ctx.query.get("offset", 0), ctx.query.get("limit", 50))
    return jsonify(rows), 200


@events_bp.route("/<int:id>", methods=["GET"])
@validate(ResourceExists(_event_by_id))
def get_event(ctx: RequestContext, id: int) -> Tuple[Response, int]:
    """
    Get a single event by ID.

    Returns:
        200: Event object.
        404: Event not found.
    """
    return jsonify(ctx.resource), 200


@events_bp.route("", methods=["POST"])
@require_authentication
@validate(
    *event_fields("description"),
    ResourceNotExists(_event_by_name, field="name", location="body"),
)
def create_event(ctx: RequestContext) -> Tuple[Response, int]:
    """
    Create an event. The slug is derived from the name.

    Returns:
        201: The created event.
        400: Validation error, or an event with the same slug exists.
        401: Not authenticated.
    """
    try:
        event = store.create_event(ctx.body["name"], ctx.body.get("description"))
    except store.SlugTaken:
        return _slug_taken()

    logger.info(f"[Events] Created event id={event['id']} slug={event['slug']}")
    return jsonify(event), 201


@events_bp.route("/<int:id>", methods=["PATCH"])
@require_authentication
@validate(
    ResourceExists(_event_by_id),
    *event_fields("description"),
)
def update_event(ctx: RequestContext, id: int) -> Tuple[Response, int]:
    """
    Partial update of name and/or description. Always bumps `updated`.

    Returns:
        200: Updated event.
        400: Validation error, nothing to update, or slug clash.
        401: Not authenticated.
        404: Event not found.
    """
    try:
        event = store.update_event(
            id,
            name=ctx.body.get("name") or None,
            description=ctx.body.get("description"),
        )
    except store.SlugTaken:
        return _slug_taken()

    if event is False:
        return jsonify({"error": "Nothing to update"}), 400
    if event is None:
        return jsonify({"error": "Event not found"}), 404

    return jsonify(event), 200


@events_bp.route("/<int:id>", methods=["DELETE"])
@require_authentication
def delete_event(id: int) -> Tuple[Response, int]:
    """
    Delete an event and, through the foreign key, its registrations.

    Returns:
        200: {}
        404: Event not found (including when already deleted).
    """
    if store.delete_event(id) == 0:
        return jsonify({"error": "Event not found"}), 404

    logger.info(f"[Events] Deleted event id={id}")
    return jsonify({}), 200
