"""
Request validation chain.

A route declares an ordered list of checks. Each check looks at the request
context and returns an Outcome:

    PASS                      nothing to report
    SKIP                      nothing to report, a more basic check already covers it
    field_error(msg)          recorded, the chain keeps going
    failure(kind, msg)        stops the chain, the response takes kind's status

Field errors are all returned together with 400. A failure wins over any
field errors and is returned on its own.
"""

import enum
import logging
from dataclasses import dataclass, field
from functools import wraps
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from flask import Response, g, jsonify, request
from werkzeug.exceptions import BadRequest

logger = logging.getLogger(__name__)


class InvalidJson(BadRequest):
    description = "Invalid json"


class OutcomeKind(enum.Enum):
    PASS = "pass"
    SKIP = "skip"
    FIELD_ERROR = "field_error"
    FAILURE = "failure"


class FailureKind(enum.Enum):
    """Classified failures and the status each one maps to."""

    UNAUTHORIZED = 401
    FORBIDDEN = 403
    NOT_FOUND = 404
    SERVER_ERROR = 500

    @property
    def status(self) -> int:
        return self.value


# Which failure wins if a result somehow holds several.
FAILURE_PRIORITY = (
    FailureKind.SERVER_ERROR,
    FailureKind.NOT_FOUND,
    FailureKind.FORBIDDEN,
    FailureKind.UNAUTHORIZED,
)


@dataclass(frozen=True)
class Outcome:
    kind: OutcomeKind
    message: Optional[str] = None
    failure: Optional[FailureKind] = None


PASS = Outcome(OutcomeKind.PASS)
SKIP = Outcome(OutcomeKind.SKIP)


def field_error(message: str) -> Outcome:
    return Outcome(OutcomeKind.FIELD_ERROR, message)


def failure(kind: FailureKind, message: str) -> Outcome:
    return Outcome(OutcomeKind.FAILURE, message, kind)


def not_found(message: str = "not found") -> Outcome:
    return failure(FailureKind.NOT_FOUND, message)


def server_error(message: str = "server error") -> Outcome:
    return failure(FailureKind.SERVER_ERROR, message)


def unauthorized(message: str) -> Outcome:
    return failure(FailureKind.UNAUTHORIZED, message)


def forbidden(message: str) -> Outcome:
    return failure(FailureKind.FORBIDDEN, message)


@dataclass
class RequestContext:
    """Everything a check may read, and where sanitizers write back."""

    method: str = "GET"
    body: Dict[str, Any] = field(default_factory=dict)
    params: Dict[str, Any] = field(default_factory=dict)
    query: Dict[str, Any] = field(default_factory=dict)
    user: Optional[Dict[str, Any]] = None
    resources: Dict[str, Any] = field(default_factory=dict)

    def source(self, location: str) -> Dict[str, Any]:
        if location == "body":
            return self.body
        if location == "params":
            return self.params
        if location == "query":
            return self.query
        raise ValueError(f"unknown location {location!r}")

    def get(self, location: str, name: str, default: Any = None) -> Any:
        return self.source(location).get(name, default)

    @property
    def resource(self) -> Any:
        """The resource stored under the default key by an existence check."""
        return self.resources.get("resource")


class Check:
    """
    One step in a validation chain.

    `field` and `location` only say where a field error is reported; a check
    is free to read anything in the context.
    """

    field: Optional[str] = None
    location: str = "body"

    def evaluate(self, ctx: RequestContext) -> Outcome:
        raise NotImplementedError


@dataclass(frozen=True)
class ValidationError:
    param: Optional[str]
    msg: str
    location: str

    def to_dict(self) -> Dict[str, Any]:
        return {"param": self.param, "msg": self.msg, "location": self.location}


@dataclass
class ValidationResult:
    errors: List[ValidationError] = field(default_factory=list)
    failures: List[Tuple[FailureKind, ValidationError]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors and not self.failures

    def _winning_failure(self) -> Optional[Tuple[FailureKind, ValidationError]]:
        for kind in FAILURE_PRIORITY:
            for failed_kind, error in self.failures:
                if failed_kind is kind:
                    return failed_kind, error
        return None

    @property
    def status(self) -> int:
        winner = self._winning_failure()
        if winner:
            return winner[0].status
        return 400 if self.errors else 200

    def visible_errors(self) -> List[ValidationError]:
        winner = self._winning_failure()
        if winner:
            return [winner[1]]
        return list(self.errors)

    def to_response(self) -> Tuple[Response, int]:
        return jsonify({"errors": [e.to_dict() for e in self.visible_errors()]}), self.status


class ValidationChain:
    """Runs checks in order and applies the aggregation rules once."""

    def __init__(self, checks: Sequence[Check]) -> None:
        self.checks = list(checks)

    def run(self, ctx: RequestContext) -> ValidationResult:
        result = ValidationResult()

        for check in self.checks:
            try:
                outcome = check.evaluate(ctx)
            except Exception:
                logger.exception(f"[Validation] Unhandled error in {type(check).__name__}")
                outcome = server_error()

            if outcome.kind is OutcomeKind.FIELD_ERROR:
                result.errors.append(ValidationError(check.field, outcome.message, check.location))
            elif outcome.kind is OutcomeKind.FAILURE:
                error = ValidationError(check.field, outcome.message, check.location)
                result.failures.append((outcome.failure, error))
                break

        return result


def load_body() -> Dict[str, Any]:
    """
    Request body as a dict: parsed JSON or form fields.

    Raises:
        InvalidJson: If a JSON body does not parse.
    """
    if request.is_json:
        if not request.get_data():
            return {}
        data = request.get_json(silent=True)
        if data is None and request.get_data().strip() != b"null":
            raise InvalidJson()
        return dict(data) if isinstance(data, dict) else {}
    return request.form.to_dict()


def build_context(params: Dict[str, Any]) -> RequestContext:
    return RequestContext(
        method=request.method,
        body=load_body(),
        params=dict(params),
        query=request.args.to_dict(),
        user=g.get("user"),
    )


def validate(*checks: Check) -> Callable:
    """
    Decorator running a validation chain before a route handler.

    On success the handler is called with the RequestContext as its first
    argument, followed by the URL parameters.
    """
    chain = ValidationChain(checks)

    def decorator(fn: Callable) -> Callable:
        @wraps(fn)
        def wrapper(*args: Any, **kwargs: Any):
            ctx = build_context(kwargs)
            result = chain.run(ctx)
            if not result.ok:
                return result.to_response()
            return fn(ctx, *args, **kwargs)

        return wrapper

    return decorator
