"""Tests for tool argument validation."""

from __future__ import annotations

import pytest

from ha_gateway.errors import InvalidArgument
from ha_gateway.security.validator import (
    allowed_service,
    any_of,
    free_text,
    identifier,
    is_well_formed_identifier,
    is_within_range,
    one_of,
    required,
    sanitize,
    sanitize_data,
    service_data,
    slug,
    validate,
    within_range,
)


class TestIdentifier:
    """Entity identifier shape checks."""

    @pytest.mark.parametrize(
        "entity_id",
        ["light.living_room", "automation.morning_routine", "sensor.temp_1", "media_player.tv"],
    )
    def test_accepts_well_formed(self, entity_id: str) -> None:
        assert is_well_formed_identifier(entity_id) is True

    @pytest.mark.parametrize(
        "entity_id",
        [
            "Light.Living_Room",
            "lightliving_room",
            "light.",
            "light.<script>",
            ".kitchen",
            "light.kitchen.extra",
            "light.kitchen-2",
            "light. kitchen",
            "light1.kitchen",
            "",
            None,
            42,
        ],
    )
    def test_rejects_malformed(self, entity_id) -> None:
        assert is_well_formed_identifier(entity_id) is False

    def test_domain_restricted_rule(self) -> None:
        """Test a rule restricted to one domain rejects other domains."""
        rule = identifier("entity_id", domain="light")

        validate({"entity_id": "light.kitchen"}, [rule])
        with pytest.raises(InvalidArgument) as exc_info:
            validate({"entity_id": "switch.kitchen"}, [rule])

        assert exc_info.value.field == "entity_id"
        assert "light.<name>" in exc_info.value.reason


class TestRange:
    """Inclusive numeric bounds."""

    @pytest.mark.parametrize("value", [0, 128, 255, 0.0, 254.5])
    def test_inside_bounds(self, value) -> None:
        assert is_within_range(value, 0, 255) is True

    @pytest.mark.parametrize("value", [-1, 256, 255.01, "128", None, True])
    def test_outside_bounds_or_not_a_number(self, value) -> None:
        assert is_within_range(value, 0, 255) is False

    def test_optional_range_skipped_when_absent(self) -> None:
        assert validate({}, [within_range("brightness", 0, 255)]) == {}

    def test_required_range_fails_when_absent(self) -> None:
        with pytest.raises(InvalidArgument):
            validate({}, [within_range("brightness", 0, 255, optional=False)])


class TestSanitize:
    """Free text sanitization."""

    def test_removes_unsafe_characters(self) -> None:
        assert sanitize("<b>Tom & \"Jerry's\"</b>") == "bTom  Jerrys/b"

    def test_idempotent(self) -> None:
        """Test sanitizing twice equals sanitizing once."""
        raw = "<script>alert('x')</script> & more"
        assert sanitize(sanitize(raw)) == sanitize(raw)

    def test_leaves_safe_text_alone(self) -> None:
        assert sanitize("Zakupy na sobotę") == "Zakupy na sobotę"

    def test_free_text_rule_sanitizes_copy(self) -> None:
        """Test validate returns a sanitized copy and leaves input untouched."""
        arguments = {"name": "  <Groceries>  "}

        cleaned = validate(arguments, [free_text("name")])

        assert cleaned == {"name": "Groceries"}
        assert arguments == {"name": "  <Groceries>  "}

    def test_free_text_rejects_only_unsafe_characters(self) -> None:
        with pytest.raises(InvalidArgument):
            validate({"name": "<>&"}, [free_text("name")])

    def test_free_text_max_length(self) -> None:
        with pytest.raises(InvalidArgument):
            validate({"name": "x" * 101}, [free_text("name", max_length=100)])


class TestServiceData:
    """Service call payloads."""

    @pytest.mark.parametrize(
        "data",
        [
            {},
            {"brightness": 120},
            {"entity_id": "light.kitchen"},
            {"entity_id": ["light.kitchen", "switch.fan"]},
        ],
    )
    def test_accepts(self, data) -> None:
        validate({"data": data}, [service_data()])

    @pytest.mark.parametrize(
        "data",
        [
            "abc",
            ["light.kitchen"],
            {"entity_id": "Light.Kitchen"},
            {"entity_id": []},
            {"entity_id": ["light.kitchen", 3]},
        ],
    )
    def test_rejects(self, data) -> None:
        with pytest.raises(InvalidArgument) as exc_info:
            validate({"data": data}, [service_data()])

        assert exc_info.value.field == "data"

    def test_absent_data_is_skipped(self) -> None:
        assert validate({"domain": "light"}, [service_data()]) == {"domain": "light"}

    def test_string_values_sanitized_in_copy(self) -> None:
        arguments = {"data": {"name": "a'<b>", "tags": ["<x>", 5], "level": 3}}

        cleaned = validate(arguments, [service_data()])

        assert cleaned["data"] == {"name": "ab", "tags": ["x", 5], "level": 3}
        assert arguments["data"]["name"] == "a'<b>"

    def test_sanitize_data_keeps_keys(self) -> None:
        assert sanitize_data({"<k>": "<v>"}) == {"<k>": "v"}


class TestValidate:
    """Rule evaluation order and cross-field checks."""

    def test_first_failing_rule_is_reported(self) -> None:
        rules = [required("entity_id"), identifier("entity_id"), one_of("state", ("on", "off"))]

        with pytest.raises(InvalidArgument) as exc_info:
            validate({"state": "maybe"}, rules)

        assert exc_info.value.field == "entity_id"
        assert exc_info.value.reason == "is required"

    def test_same_verdict_twice(self) -> None:
        """Test checks are pure."""
        rules = [required("entity_id"), identifier("entity_id")]
        arguments = {"entity_id": "light.kitchen"}

        assert validate(arguments, rules) == validate(arguments, rules)

    def test_slug(self) -> None:
        validate({"domain": "media_player"}, [slug("domain")])
        with pytest.raises(InvalidArgument):
            validate({"domain": "media player"}, [slug("domain")])

    @pytest.mark.parametrize(
        "domain,service",
        [("homeassistant", "restart"), ("homeassistant", "stop"), ("recorder", "purge")],
    )
    def test_denied_services(self, domain: str, service: str) -> None:
        with pytest.raises(InvalidArgument, match="is not allowed"):
            validate({"domain": domain, "service": service}, [allowed_service()])

    def test_allowed_service(self) -> None:
        validate({"domain": "light", "service": "turn_on"}, [allowed_service()])

    def test_error_metadata(self) -> None:
        with pytest.raises(InvalidArgument) as exc_info:
            validate({"state": "dim"}, [one_of("state", ("on", "off"))])

        assert exc_info.value.to_metadata() == {
            "error": "invalid_argument",
            "field": "state",
            "reason": "must be one of: on, off",
        }

    def test_any_of_requires_one(self) -> None:
        rule = any_of("temperature", "hvac_mode")

        validate({"hvac_mode": "heat"}, [rule])
        validate({"temperature": 21}, [rule])
        with pytest.raises(InvalidArgument) as exc_info:
            validate({"entity_id": "climate.hall"}, [rule])

        assert exc_info.value.field == "temperature"
        assert exc_info.value.reason == "provide at least one of: temperature, hvac_mode"
