from datetime import datetime, timezone

import pytest

from app.core.exceptions import ValidationError, ValidationReason
from app.models.contract import Category
from app.services.validation_service import (
    validate_category,
    validate_contact,
    validate_create,
    validate_edit,
    validate_name,
    validate_renewal_date,
)
from conftest import NOW


def _reason(excinfo):
    return excinfo.value.reason


def test_valid_create():
    fields = validate_create("  João Silva ", "912345678", "2026-10-22", now=NOW)
    assert fields.name == "João Silva"
    assert fields.contact == "912345678"
    assert fields.category is Category.POOL_SERVICE
    assert fields.expires_at == datetime(2026, 10, 22, tzinfo=timezone.utc)


def test_create_uses_default_category_when_omitted():
    fields = validate_create("Ana", None, "2026-10-22", default_category=Category.GARDEN_SERVICE, now=NOW)
    assert fields.category is Category.GARDEN_SERVICE
    assert fields.contact is None


@pytest.mark.parametrize("name, contact, expires_at, field", [
    ("", "912345678", "2026-10-22", "name"),
    ("   ", None, "2026-10-22", "name"),
    ("Ana", None, "", "expires_at"),
    (None, None, None, "name"),
])
def test_empty_required_fields(name, contact, expires_at, field):
    with pytest.raises(ValidationError) as excinfo:
        validate_create(name, contact, expires_at, now=NOW)
    assert _reason(excinfo) is ValidationReason.EMPTY_REQUIRED_FIELD
    assert excinfo.value.field == field


@pytest.mark.parametrize("name", ["João123", "Ana-Maria", "O'Neil", "Ana_"])
def test_name_rejects_non_letters(name):
    with pytest.raises(ValidationError) as excinfo:
        validate_name(name)
    assert _reason(excinfo) is ValidationReason.INVALID_NAME_CHARACTERS


@pytest.mark.parametrize("name", ["Zoë Ångström", "Conceição", "Ana"])
def test_name_accepts_accented_letters(name):
    assert validate_name(name) == name


def test_name_length_limit():
    assert validate_name("a" * 50) == "a" * 50
    with pytest.raises(ValidationError) as excinfo:
        validate_name("a" * 51)
    assert _reason(excinfo) is ValidationReason.NAME_TOO_LONG


def test_short_name_only_rejected_on_edit():
    assert validate_name("Al") == "Al"
    with pytest.raises(ValidationError) as excinfo:
        validate_name(" Al ", edit=True)
    assert _reason(excinfo) is ValidationReason.NAME_TOO_SHORT


@pytest.mark.parametrize("name", ["João123", "Ana-Maria", "x" * 51, "Conceição", "Bea"])
def test_create_and_edit_paths_agree_on_name_format(name):
    """Apart from the minimum length, both paths accept and reject the same names"""
    def outcome(edit):
        try:
            validate_name(name, edit=edit)
            return None
        except ValidationError as e:
            return e.reason

    assert outcome(False) == outcome(True)


@pytest.mark.parametrize("contact", ["12345678", "1234567890", "91234567a", "912 345 678"])
def test_contact_must_be_nine_digits(contact):
    with pytest.raises(ValidationError) as excinfo:
        validate_contact(contact)
    assert _reason(excinfo) is ValidationReason.INVALID_CONTACT_FORMAT


@pytest.mark.parametrize("contact", [None, "", "   "])
def test_contact_is_optional(contact):
    assert validate_contact(contact) is None


def test_expiration_today_is_before_minimum():
    with pytest.raises(ValidationError) as excinfo:
        validate_create("Ana", None, "2026-10-19", now=NOW)
    assert _reason(excinfo) is ValidationReason.DATE_BEFORE_MINIMUM


def test_expiration_tomorrow_is_accepted():
    assert validate_renewal_date("2026-10-20", NOW) == datetime(2026, 10, 20, tzinfo=timezone.utc)


def test_expiration_must_parse():
    with pytest.raises(ValidationError) as excinfo:
        validate_renewal_date("2026-13-01", NOW)
    assert _reason(excinfo) is ValidationReason.INVALID_DATE


def test_first_failing_rule_wins():
    with pytest.raises(ValidationError) as excinfo:
        validate_create("Ana1", "123", "2026-01-01", now=NOW)
    assert _reason(excinfo) is ValidationReason.INVALID_NAME_CHARACTERS


@pytest.mark.parametrize("raw, expected", [
    ("Piscinas", Category.POOL_SERVICE),
    ("jardins", Category.GARDEN_SERVICE),
    ("PoolService", Category.POOL_SERVICE),
    ("GardenService", Category.GARDEN_SERVICE),
    (Category.GARDEN_SERVICE, Category.GARDEN_SERVICE),
    (None, Category.POOL_SERVICE),
])
def test_category_resolution(raw, expected):
    assert validate_category(raw, Category.POOL_SERVICE) is expected


def test_unknown_category_rejected():
    with pytest.raises(ValidationError) as excinfo:
        validate_category("Outros", Category.POOL_SERVICE)
    assert _reason(excinfo) is ValidationReason.INVALID_CATEGORY


def test_edit_keeps_current_category_when_omitted():
    fields = validate_edit("Ana Sousa", "", "2026-11-01", None, Category.GARDEN_SERVICE, NOW)
    assert fields.category is Category.GARDEN_SERVICE


def test_error_payload():
    with pytest.raises(ValidationError) as excinfo:
        validate_contact("123")
    assert excinfo.value.to_dict() == {
        "reason": "invalid-contact-format",
        "field": "contact",
        "message": "O contacto deve conter exatamente 9 números.",
    }
