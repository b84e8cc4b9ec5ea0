"""
Reusable checks for validation chains.
"""

import logging
from typing import Any, Callable, Iterable, Optional

from backend.validation.engine import (
    PASS,
    SKIP,
    Check,
    Outcome,
    RequestContext,
    field_error,
    forbidden,
    not_found,
    server_error,
    unauthorized,
)

logger = logging.getLogger(__name__)

TRUE_VALUES = ("true", "1")
FALSE_VALUES = ("false", "0")


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value)
    return None


def as_id(value: Any) -> int:
    """Coerce a positive integer id, for ResourceExists(coerce=...)."""
    number = _as_int(value)
    if number is None or number < 1:
        raise ValueError(f"not an id: {value!r}")
    return number


# --- SANITIZERS ---

class Trim(Check):
    """Strip surrounding whitespace from a string field."""

    def __init__(self, field: str, location: str = "body") -> None:
        self.field = field
        self.location = location

    def evaluate(self, ctx: RequestContext) -> Outcome:
        source = ctx.source(self.location)
        if isinstance(source.get(self.field), str):
            source[self.field] = source[self.field].strip()
        return PASS


# --- SYNTAX CHECKS ---

class Length(Check):
    """
    String length between `min` and `max`.

    With `optional_on_patch`, an empty or missing value is accepted on PATCH
    requests so partial updates can leave the field out.
    """

    def __init__(
        self,
        field: str,
        message: str,
        min: int = 0,
        max: Optional[int] = None,
        optional_on_patch: bool = False,
        location: str = "body",
    ) -> None:
        self.field = field
        self.message = message
        self.min = min
        self.max = max
        self.optional_on_patch = optional_on_patch
        self.location = location

    def evaluate(self, ctx: RequestContext) -> Outcome:
        value = ctx.get(self.location, self.field)

        if self.optional_on_patch and ctx.method == "PATCH" and not value:
            return PASS

        if value is None and self.min == 0:
            return PASS
        if not isinstance(value, str):
            return field_error(self.message)
        if len(value) < self.min:
            return field_error(self.message)
        if self.max is not None and len(value) > self.max:
            return field_error(self.message)
        return PASS


class IsInt(Check):
    """Integer (or integer string) no smaller than `min`; stores the int back."""

    def __init__(
        self,
        field: str,
        message: str,
        min: Optional[int] = None,
        optional: bool = False,
        location: str = "body",
    ) -> None:
        self.field = field
        self.message = message
        self.min = min
        self.optional = optional
        self.location = location

    def evaluate(self, ctx: RequestContext) -> Outcome:
        source = ctx.source(self.location)
        if self.field not in source or source[self.field] in (None, ""):
            return PASS if self.optional else field_error(self.message)

        number = _as_int(source[self.field])
        if number is None or (self.min is not None and number < self.min):
            return field_error(self.message)

        source[self.field] = number
        return PASS


class IsBoolean(Check):
    """
    Required boolean. Reports only the first problem found.

    Form posts send strings, so "true"/"false"/"1"/"0" are coerced.
    """

    def __init__(
        self,
        field: str,
        required_message: Optional[str] = None,
        type_message: Optional[str] = None,
        location: str = "body",
    ) -> None:
        self.field = field
        self.required_message = required_message or f"{field} is required"
        self.type_message = type_message or f"{field} must be a boolean"
        self.location = location

    def evaluate(self, ctx: RequestContext) -> Outcome:
        source = ctx.source(self.location)
        if self.field not in source or source[self.field] is None:
            return field_error(self.required_message)

        value = source[self.field]
        if isinstance(value, bool):
            return PASS
        if isinstance(value, (str, int)):
            text = str(value).strip().lower()
            if text in TRUE_VALUES:
                source[self.field] = True
                return PASS
            if text in FALSE_VALUES:
                source[self.field] = False
                return PASS
        return field_error(self.type_message)


class AtLeastOneOf(Check):
    """At least one of `fields` is present and not null."""

    def __init__(self, fields: Iterable[str], message: Optional[str] = None) -> None:
        self.fields = list(fields)
        self.field = None
        self.message = message or f"require at least one value of: {', '.join(self.fields)}"

    def evaluate(self, ctx: RequestContext) -> Outcome:
        if any(ctx.body.get(name) is not None for name in self.fields):
            return PASS
        return field_error(self.message)


# --- RESOURCE CHECKS ---

class ResourceExists(Check):
    """
    Look up the resource a field points to.

    `fetch(value, ctx)` returns the resource or None. A found resource is
    stored in `ctx.resources[key]` so the handler does not look it up again.
    Missing is NotFound; a raising fetch is ServerError.
    """

    def __init__(
        self,
        fetch: Callable[[Any, RequestContext], Any],
        field: str = "id",
        location: str = "params",
        key: str = "resource",
        coerce: Optional[Callable[[Any], Any]] = None,
        message: str = "not found",
    ) -> None:
        self.fetch = fetch
        self.field = field
        self.location = location
        self.key = key
        self.coerce = coerce
        self.message = message

    def _value(self, ctx: RequestContext) -> Any:
        value = ctx.get(self.location, self.field)
        if value is None:
            return None
        if self.coerce is not None:
            try:
                return self.coerce(value)
            except (TypeError, ValueError):
                return None
        return value

    def _lookup(self, value: Any, ctx: RequestContext) -> Any:
        return self.fetch(value, ctx)

    def evaluate(self, ctx: RequestContext) -> Outcome:
        value = self._value(ctx)
        if value is None:
            # Presence and type belong to other checks.
            return SKIP

        try:
            resource = self._lookup(value, ctx)
        except Exception as e:
            logger.warning(f"[Validation] Error from {self.field} lookup: {e}")
            return server_error()

        if not resource:
            return not_found(self.message)

        ctx.resources[self.key] = resource
        return PASS


class ResourceNotExists(ResourceExists):
    """
    Inverse of ResourceExists: reject when the lookup finds something.

    Only string values are looked up; other types belong to the syntax checks.
    """

    def __init__(self, *args: Any, message: str = "already exists", **kwargs: Any) -> None:
        super().__init__(*args, message=message, **kwargs)

    def evaluate(self, ctx: RequestContext) -> Outcome:
        value = self._value(ctx)
        if not value or not isinstance(value, str):
            return SKIP

        try:
            resource = self._lookup(value, ctx)
        except Exception as e:
            logger.warning(f"[Validation] Error from {self.field} lookup: {e}")
            return server_error()

        if resource:
            return field_error(self.message)
        return PASS


class UsernameNotTaken(Check):
    field = "username"

    def __init__(self, find_by_username: Callable[[str], Any]) -> None:
        self.find_by_username = find_by_username

    def evaluate(self, ctx: RequestContext) -> Outcome:
        username = ctx.body.get("username")
        if not isinstance(username, str) or not username:
            return SKIP

        try:
            existing = self.find_by_username(username)
        except Exception as e:
            logger.warning(f"[Auth] Error checking username: {e}")
            return server_error()

        if existing:
            return field_error("username already exists")
        return PASS


class CredentialsMatch(Check):
    """
    Username and password belong together.

    Unknown user and wrong password answer identically; only the log differs.
    The matching user is stored in `ctx.resources["user"]`.
    """

    field = "username"
    message = "username or password incorrect"

    def __init__(
        self,
        find_by_username: Callable[[str], Any],
        compare: Callable[[str, str], bool],
    ) -> None:
        self.find_by_username = find_by_username
        self.compare = compare

    def evaluate(self, ctx: RequestContext) -> Outcome:
        username = ctx.body.get("username")
        password = ctx.body.get("password")

        # Missing values are reported by the length checks.
        if not username or not password:
            return SKIP
        if not isinstance(username, str) or not isinstance(password, str):
            return SKIP

        try:
            user = self.find_by_username(username)
        except Exception as e:
            logger.warning(f"[Auth] Error looking up {username!r} for login: {e}")
            return server_error()

        if not user:
            logger.info(f"[Auth] Invalid login attempt, unknown user {username!r}")
            return unauthorized(self.message)

        if not self.compare(password, user.get("password")):
            logger.info(f"[Auth] Invalid login attempt, wrong password for {username!r}")
            return unauthorized(self.message)

        ctx.resources["user"] = user
        return PASS


class NotSelf(Check):
    """The target id in the URL is not the caller's own id."""

    def __init__(self, field: str = "id", message: str = "admin cannot change self") -> None:
        self.field = field
        self.location = "params"
        self.message = message

    def evaluate(self, ctx: RequestContext) -> Outcome:
        if not ctx.user or ctx.user.get("id") is None:
            return unauthorized("authentication required")

        target = _as_int(ctx.params.get(self.field))
        if target is None or target == ctx.user["id"]:
            return forbidden(self.message)
        return PASS


# offset/limit query parameters for list endpoints
PAGING = (
    IsInt("offset", 'query parameter "offset" must be an int, 0 or larger', min=0, optional=True, location="query"),
    IsInt("limit", 'query parameter "limit" must be an int, larger than 0', min=1, optional=True, location="query"),
)
