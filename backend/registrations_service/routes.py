"""
Registrations service routes: sign up for an event, list and cancel sign-ups.
"""

import logging
from typing import Tuple

from flask import Blueprint, Response, jsonify

from backend.auth_service.utils import require_authentication
from backend.events_service import store as events
from backend.events_service.routes import event_fields
from backend.registrations_service import store
from backend.validation.checks import IsInt, ResourceExists, as_id
from backend.validation.engine import RequestContext, validate

logger = logging.getLogger(__name__)

registrations_bp = Blueprint("registrations", __name__)


def _event_by_id(event_id, ctx):
    return events.find_event(event_id)


@registrations_bp.route("", methods=["POST"])
@validate(
    *event_fields("comment"),
    IsInt("event", "event must be a valid event id", min=1),
    ResourceExists(_event_by_id, field="event", location="body", key="event", coerce=as_id),
)
def create_registration(ctx: RequestContext) -> Tuple[Response, int]:
    """
    Register for an event. Open to anyone.

    Expects JSON: { "name": str, "comment": str (optional), "event": int }

    Returns:
        201: The created registration.
        400: Validation error.
        404: Event does not exist.
    """
    registration = store.create_registration(
        ctx.body["name"],
        ctx.body.get("comment"),
        ctx.resources["event"]["id"],
    )
    logger.info(f"[Registrations] Created id={registration['id']} for event id={registration['event']}")
    return jsonify(registration), 201


@registrations_bp.route("", methods=["GET"])
@require_authentication
@validate(
    IsInt("event", 'query parameter "event" must be a valid event id', min=1, location="query"),
    ResourceExists(_event_by_id, field="event", location="query", key="event", coerce=as_id),
)
def list_registrations(ctx: RequestContext) -> Tuple[Response, int]:
    """
    Registrations for one event: GET /registrations?event=<id>
    """
    return jsonify(store.list_registrations(ctx.resources["event"]["id"])), 200


@registrations_bp.route("/<int:id>", methods=["DELETE"])
@require_authentication
def delete_registration(id: int) -> Tuple[Response, int]:
    """
    Cancel a registration.

    Returns:
        200: {}
        404: Registration not found (including when already deleted).
    """
    if store.delete_registration(id) == 0:
        return jsonify({"error": "Registration not found"}), 404

    return jsonify({}), 200
