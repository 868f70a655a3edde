"""
Validation service.

Field-level rules applied to raw user input before a contract is created,
edited or renewed. This is a pure gate: nothing here touches the store.

Rules are checked in a fixed order and the first violated rule wins; a
single `ValidationError` carrying a reason code and a human-readable
message is raised. Errors are never aggregated.

Contact is optional on both the create and the edit paths.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

from app.core.exceptions import ValidationError, ValidationReason
from app.models.contract import Category
from app.util.dates import minimum_allowed_date, now_local, parse_date_input

logger = logging.getLogger(__name__)

NAME_PATTERN = re.compile(r"[a-zA-Z\u00C0-\u017F\s]*")
CONTACT_PATTERN = re.compile(r"[0-9]{9}")
NAME_MAX_LENGTH = 50
EDIT_NAME_MIN_LENGTH = 3

MESSAGES = {
    ValidationReason.EMPTY_REQUIRED_FIELD: "Preencha todos os campos obrigatórios.",
    ValidationReason.INVALID_NAME_CHARACTERS: "O nome só pode conter letras e espaços.",
    ValidationReason.NAME_TOO_LONG: f"O nome não pode ter mais de {NAME_MAX_LENGTH} caracteres.",
    ValidationReason.NAME_TOO_SHORT: f"O nome deve ter pelo menos {EDIT_NAME_MIN_LENGTH} caracteres.",
    ValidationReason.INVALID_CONTACT_FORMAT: "O contacto deve conter exatamente 9 números.",
    ValidationReason.INVALID_DATE: "Data inválida.",
    ValidationReason.DATE_BEFORE_MINIMUM: "A data deve ser pelo menos amanhã.",
    ValidationReason.INVALID_CATEGORY: "Categoria inválida.",
}

_CATEGORY_ALIASES = {
    "piscinas": Category.POOL_SERVICE,
    "poolservice": Category.POOL_SERVICE,
    "pool_service": Category.POOL_SERVICE,
    "jardins": Category.GARDEN_SERVICE,
    "gardenservice": Category.GARDEN_SERVICE,
    "garden_service": Category.GARDEN_SERVICE,
}


@dataclass
class ContractFields:
    """Validated values ready to be written to the store."""

    name: str
    contact: Optional[str]
    category: Category
    expires_at: datetime


def _reject(reason: ValidationReason, field: str) -> ValidationError:
    logger.info("Validation rejected field '%s': %s", field, reason.value)
    return ValidationError(reason, MESSAGES[reason], field)


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


# ------------------------------------------------------------------------------
# Single-field rules
# ------------------------------------------------------------------------------

def validate_name(raw: Optional[str], *, edit: bool = False) -> str:
    """
    Validate a client name.

    Args:
        raw (str | None): Name as typed.
        edit (bool): Apply the edit-path rule (trimmed length of at least 3).

    Returns:
        str: The trimmed name.

    Raises:
        ValidationError: empty-required-field, invalid-name-characters,
            name-too-long or name-too-short.
    """

    if _is_blank(raw):
        raise _reject(ValidationReason.EMPTY_REQUIRED_FIELD, "name")
    if not NAME_PATTERN.fullmatch(raw):
        raise _reject(ValidationReason.INVALID_NAME_CHARACTERS, "name")
    if len(raw) > NAME_MAX_LENGTH:
        raise _reject(ValidationReason.NAME_TOO_LONG, "name")
    if edit and len(raw.strip()) < EDIT_NAME_MIN_LENGTH:
        raise _reject(ValidationReason.NAME_TOO_SHORT, "name")
    return raw.strip()


def validate_contact(raw: Optional[str]) -> Optional[str]:
    """
    Validate an optional contact.

    Returns:
        str | None: The nine digits, or None when no contact was given.

    Raises:
        ValidationError: invalid-contact-format.
    """

    if _is_blank(raw):
        return None
    value = raw.strip()
    if not CONTACT_PATTERN.fullmatch(value):
        raise _reject(ValidationReason.INVALID_CONTACT_FORMAT, "contact")
    return value


def validate_expiration(raw: Optional[str], now: Optional[datetime] = None) -> datetime:
    """
    Validate a `YYYY-MM-DD` expiration date.

    The date must fall on or after `minimum_allowed_date(now)` (tomorrow).

    Returns:
        datetime: Local midnight of the chosen day.

    Raises:
        ValidationError: empty-required-field, invalid-date or date-before-minimum.
    """

    if _is_blank(raw):
        raise _reject(ValidationReason.EMPTY_REQUIRED_FIELD, "expires_at")
    now = now or now_local()
    try:
        expires_at = parse_date_input(raw, now.tzinfo)
    except ValueError:
        raise _reject(ValidationReason.INVALID_DATE, "expires_at")
    if expires_at.date() < minimum_allowed_date(now):
        raise _reject(ValidationReason.DATE_BEFORE_MINIMUM, "expires_at")
    return expires_at


def validate_category(raw: Union[str, Category, None], default: Category) -> Category:
    """
    Resolve a category, falling back to `default` when omitted.

    Accepts the stored labels (`Piscinas`, `Jardins`) and the English names
    (`PoolService`, `GardenService`), case-insensitively.

    Raises:
        ValidationError: invalid-category.
    """

    if isinstance(raw, Category):
        return raw
    if _is_blank(raw):
        return default
    category = _CATEGORY_ALIASES.get(raw.strip().lower())
    if category is None:
        raise _reject(ValidationReason.INVALID_CATEGORY, "category")
    return category


# ------------------------------------------------------------------------------
# Whole-form gates
# ------------------------------------------------------------------------------

def _validate_form(
    name: Optional[str],
    contact: Optional[str],
    expires_at: Optional[str],
    category: Union[str, Category, None],
    default_category: Category,
    now: Optional[datetime],
    edit: bool,
) -> ContractFields:
    # Both mandatory fields are checked before any format rule.
    if _is_blank(name):
        raise _reject(ValidationReason.EMPTY_REQUIRED_FIELD, "name")
    if _is_blank(expires_at):
        raise _reject(ValidationReason.EMPTY_REQUIRED_FIELD, "expires_at")

    return ContractFields(
        name=validate_name(name, edit=edit),
        contact=validate_contact(contact),
        expires_at=validate_expiration(expires_at, now),
        category=validate_category(category, default_category),
    )


def validate_create(
    name: Optional[str],
    contact: Optional[str],
    expires_at: Optional[str],
    category: Union[str, Category, None] = None,
    default_category: Category = Category.POOL_SERVICE,
    now: Optional[datetime] = None,
) -> ContractFields:
    """
    Validate the fields of a new contract.

    Args:
        name (str): Client name (mandatory).
        contact (str | None): Optional nine-digit contact.
        expires_at (str): Expiration date as `YYYY-MM-DD` (mandatory).
        category (str | Category | None): Category; `default_category` when omitted.
        default_category (Category): Category of the context the contract is added from.
        now (datetime, optional): Reference instant for the minimum date.

    Returns:
        ContractFields: The validated values.

    Raises:
        ValidationError: On the first violated rule.
    """

    return _validate_form(name, contact, expires_at, category, default_category, now, edit=False)


def validate_edit(
    name: Optional[str],
    contact: Optional[str],
    expires_at: Optional[str],
    category: Union[str, Category, None],
    current_category: Category,
    now: Optional[datetime] = None,
) -> ContractFields:
    """
    Validate a full-field edit.

    Same rules as `validate_create` plus the minimum trimmed name length.
    An omitted category keeps `current_category`.
    """

    return _validate_form(name, contact, expires_at, category, current_category, now, edit=True)


def validate_renewal_date(raw: Optional[str], now: Optional[datetime] = None) -> datetime:
    """Validate the date of a manual renewal (only the expiration changes)."""
    return validate_expiration(raw, now)
