"""Input validation and sanitization for tool arguments.

Every tool argument passes through these checks before a request is
issued. All checks are pure: they never mutate their input and give the
same verdict when run twice.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from ha_gateway.errors import InvalidArgument

logger = logging.getLogger(__name__)

# <domain>.<object_id>, e.g. light.living_room
IDENTIFIER_PATTERN = re.compile(r"^[a-z_]+\.[a-z0-9_]+$")
SLUG_PATTERN = re.compile(r"^[a-z_][a-z0-9_]*$")

UNSAFE_CHARACTERS = "<>\"'&"
_UNSAFE_TABLE = str.maketrans("", "", UNSAFE_CHARACTERS)

# Valid but operationally dangerous services, blocked for every caller
DENIED_SERVICES = frozenset(
    {
        "homeassistant.restart",
        "homeassistant.stop",
        "recorder.purge",
        "recorder.purge_entities",
        "hassio.host_reboot",
        "hassio.host_shutdown",
    }
)


def sanitize(value: str) -> str:
    """Remove characters that are unsafe in free text.

    Args:
        value: Raw text

    Returns:
        Text without < > " ' &
    """
    if not isinstance(value, str):
        value = str(value)
    return value.translate(_UNSAFE_TABLE)


def is_well_formed_identifier(entity_id: Any) -> bool:
    """Check that an entity identifier has the <domain>.<name> shape."""
    return isinstance(entity_id, str) and IDENTIFIER_PATTERN.match(entity_id) is not None


def sanitize_data(value: Any) -> Any:
    """Sanitize every string inside a service data payload.

    Dict keys are left as they are; values, list items and nested
    containers are cleaned recursively. Other scalars pass through.
    """
    if isinstance(value, str):
        return sanitize(value)
    if isinstance(value, Mapping):
        return {key: sanitize_data(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [sanitize_data(item) for item in value]
    return value


def is_within_range(value: Any, minimum: float, maximum: float) -> bool:
    """Inclusive numeric bound check. Booleans are not numbers here."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return minimum <= value <= maximum


def has_domain(entity_id: str, domain: str) -> bool:
    """Check that an identifier belongs to the given domain."""
    return entity_id.split(".", 1)[0] == domain


def is_denied_service(domain: str, service: str) -> bool:
    """Check a service against the deny-list."""
    return f"{domain}.{service}" in DENIED_SERVICES


@dataclass(frozen=True)
class ValidationRule:
    """A predicate over one argument plus the message reported on failure.

    Attributes:
        field: Argument name the rule inspects
        check: Pure predicate over the argument value
        message: Error message when the predicate fails
        optional: Skip the rule when the argument is absent
        clean: Transform applied to the value after validation
    """

    field: str
    check: Callable[[Any], bool]
    message: str
    optional: bool = False
    clean: Callable[[Any], Any] | None = None

    def applies_to(self, arguments: Mapping[str, Any]) -> bool:
        return not (self.optional and arguments.get(self.field) is None)

    def verify(self, arguments: Mapping[str, Any]) -> None:
        """Run the predicate.

        Raises:
            InvalidArgument: If the argument fails the check
        """
        if not self.applies_to(arguments):
            return
        if not self.check(arguments.get(self.field)):
            raise InvalidArgument(self.field, self.message)


def required(field: str) -> ValidationRule:
    return ValidationRule(
        field=field,
        check=lambda value: value is not None and value != "",
        message="is required",
    )


def identifier(field: str, domain: str | None = None, optional: bool = False) -> ValidationRule:
    """Rule for an entity identifier, optionally restricted to one domain."""
    if domain is None:
        return ValidationRule(
            field=field,
            check=is_well_formed_identifier,
            message="must look like '<domain>.<name>' (lowercase letters, digits, underscores)",
            optional=optional,
        )
    return ValidationRule(
        field=field,
        check=lambda value: is_well_formed_identifier(value) and has_domain(value, domain),
        message=f"must be a '{domain}.<name>' entity id",
        optional=optional,
    )


def within_range(
    field: str, minimum: float, maximum: float, optional: bool = True
) -> ValidationRule:
    return ValidationRule(
        field=field,
        check=lambda value: is_within_range(value, minimum, maximum),
        message=f"must be a number between {minimum} and {maximum}",
        optional=optional,
    )


def one_of(field: str, allowed: Iterable[str], optional: bool = False) -> ValidationRule:
    choices = tuple(allowed)
    return ValidationRule(
        field=field,
        check=lambda value: value in choices,
        message=f"must be one of: {', '.join(choices)}",
        optional=optional,
    )


def slug(field: str, optional: bool = False) -> ValidationRule:
    """Rule for a bare domain or service name (e.g. 'light', 'turn_on')."""
    return ValidationRule(
        field=field,
        check=lambda value: isinstance(value, str) and SLUG_PATTERN.match(value) is not None,
        message="must contain only lowercase letters, digits and underscores",
        optional=optional,
    )


def free_text(field: str, max_length: int = 255, optional: bool = False) -> ValidationRule:
    """Rule for user-supplied text. The value is sanitized after validation."""
    return ValidationRule(
        field=field,
        check=lambda value: isinstance(value, str)
        and 0 < len(sanitize(value).strip()) <= max_length,
        message=f"must be non-empty text of at most {max_length} characters",
        optional=optional,
        clean=lambda value: sanitize(value).strip(),
    )


def is_valid_service_data(value: Any) -> bool:
    """Service data must be an object; its entity_id, if any, one id or a list of ids."""
    if not isinstance(value, Mapping):
        return False
    if "entity_id" not in value:
        return True
    entity_id = value["entity_id"]
    if isinstance(entity_id, list):
        return bool(entity_id) and all(is_well_formed_identifier(item) for item in entity_id)
    return is_well_formed_identifier(entity_id)


def service_data(field: str = "data") -> ValidationRule:
    """Optional service call payload. String values are sanitized."""
    return ValidationRule(
        field=field,
        check=is_valid_service_data,
        message="must be an object whose entity_id is one or more '<domain>.<name>' ids",
        optional=True,
        clean=sanitize_data,
    )


def any_of(*fields: str) -> Callable[[Mapping[str, Any]], None]:
    """Cross-field check requiring at least one of the given arguments."""

    def check(arguments: Mapping[str, Any]) -> None:
        if all(arguments.get(field) is None for field in fields):
            raise InvalidArgument(fields[0], f"provide at least one of: {', '.join(fields)}")

    return check


def allowed_service(domain_field: str = "domain", service_field: str = "service") -> Callable[
    [Mapping[str, Any]], None
]:
    """Cross-field check rejecting deny-listed services."""

    def check(arguments: Mapping[str, Any]) -> None:
        domain = arguments.get(domain_field)
        service = arguments.get(service_field)
        if isinstance(domain, str) and isinstance(service, str) and is_denied_service(
            domain, service
        ):
            raise InvalidArgument(service_field, f"service '{domain}.{service}' is not allowed")

    return check


def validate(
    arguments: Mapping[str, Any],
    rules: Iterable[ValidationRule | Callable[[Mapping[str, Any]], None]],
) -> dict[str, Any]:
    """Validate arguments against rules, returning a sanitized copy.

    Rules run in order and the first failure is raised, so the caller is
    told exactly which field to correct.

    Args:
        arguments: Raw tool arguments
        rules: ValidationRule instances or cross-field check callables

    Returns:
        New dict with free-text and service data fields sanitized

    Raises:
        InvalidArgument: If any rule fails
    """
    cleaned = dict(arguments)
    for rule in rules:
        if isinstance(rule, ValidationRule):
            rule.verify(arguments)
            if rule.clean is not None and rule.applies_to(arguments):
                cleaned[rule.field] = rule.clean(arguments[rule.field])
        else:
            rule(arguments)
    return cleaned
