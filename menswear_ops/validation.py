"""
Client-side validation for customer, member, function and size forms.

Form validators return a dict of field -> message (empty when valid) so a
caller can show the messages inline; ensure_valid() turns a non-empty dict
into a ValidationError. Nothing here touches the backend.
"""

import re
from datetime import date
from typing import Any, Dict, Mapping, Optional

from .exceptions import ValidationError

EMAIL_PATTERN = re.compile(r"^[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}$")
UK_POSTCODE_PATTERN = re.compile(r"^[A-Z]{1,2}[0-9R][0-9A-Z]?\s?[0-9][A-Z]{2}$", re.IGNORECASE)
UK_PHONE_PATTERN = re.compile(
    r"^(?:(?:\+44\s?|0)(?:\d{2}\s?\d{4}\s?\d{4}|\d{3}\s?\d{3}\s?\d{4}|\d{4}\s?\d{3}\s?\d{3}))$"
)
PIN_PATTERN = re.compile(r"^\d{4}$")

REQUIRED_SIZE_TYPES = ("chest", "waist", "inside_leg")


def _text(values: Mapping[str, Any], field: str) -> str:
    value = values.get(field)
    return str(value).strip() if value is not None else ""


def sanitize_input(value: Optional[str]) -> str:
    """Strip markup-ish content from free text"""
    if not value:
        return ""
    value = re.sub(r"[<>]", "", value)
    value = re.sub(r"javascript:", "", value, flags=re.IGNORECASE)
    value = re.sub(r"on\w+=", "", value, flags=re.IGNORECASE)
    return value.strip()


def validate_email(email: str) -> bool:
    return bool(EMAIL_PATTERN.match(email))


def validate_uk_postcode(postcode: str) -> bool:
    return bool(UK_POSTCODE_PATTERN.match(re.sub(r"\s", "", postcode)))


def validate_phone_number(phone: str) -> bool:
    return bool(UK_PHONE_PATTERN.match(re.sub(r"\s", "", phone)))


def validate_pin_format(pin: str) -> bool:
    return bool(PIN_PATTERN.match(pin or ""))


def validate_customer_form(values: Mapping[str, Any]) -> Dict[str, str]:
    errors: Dict[str, str] = {}
    if not _text(values, "first_name"):
        errors["first_name"] = "First name is required"
    if not _text(values, "last_name"):
        errors["last_name"] = "Last name is required"

    email = _text(values, "email")
    if email and not validate_email(email):
        errors["email"] = "Invalid email format"

    phone = _text(values, "phone")
    if phone and len(re.sub(r"\D", "", phone)) < 10:
        errors["phone"] = "Phone number must be at least 10 digits"

    postcode = _text(values, "postcode")
    if postcode and not validate_uk_postcode(postcode):
        errors["postcode"] = "Invalid UK postcode format"
    return errors


def validate_customer_update(values: Mapping[str, Any]) -> Dict[str, str]:
    """Like validate_customer_form, but only for the fields being changed"""
    errors = validate_customer_form(values)
    for field in ("first_name", "last_name"):
        if field not in values:
            errors.pop(field, None)
    return errors


def validate_member_form(values: Mapping[str, Any]) -> Dict[str, str]:
    errors: Dict[str, str] = {}
    if len(_text(values, "first_name")) < 2:
        errors["first_name"] = "First name must be at least 2 characters"
    if len(_text(values, "last_name")) < 2:
        errors["last_name"] = "Last name must be at least 2 characters"

    email = _text(values, "email")
    if email and not validate_email(email):
        errors["email"] = "Invalid email format"

    if not values.get("role"):
        errors["role"] = "Please select a role"
    return errors


def validate_member_update(values: Mapping[str, Any]) -> Dict[str, str]:
    errors = validate_member_form(values)
    for field in ("first_name", "last_name", "role"):
        if field not in values:
            errors.pop(field, None)
    return errors


def validate_function_details(values: Mapping[str, Any]) -> Dict[str, str]:
    errors: Dict[str, str] = {}
    wedding_date = values.get("wedding_date")
    if not wedding_date:
        errors["wedding_date"] = "Wedding date is required"
    elif not isinstance(wedding_date, date):
        try:
            date.fromisoformat(str(wedding_date))
        except ValueError:
            errors["wedding_date"] = "Wedding date must be YYYY-MM-DD"

    total_members = values.get("total_members", 1)
    try:
        if int(total_members) < 1:
            errors["total_members"] = "At least one member is required"
    except (TypeError, ValueError):
        errors["total_members"] = "Total members must be a number"
    return errors


def validate_size_entry(values: Mapping[str, Any]) -> Dict[str, str]:
    errors: Dict[str, str] = {}
    if not _text(values, "measurement"):
        errors["measurement"] = "Measurement is required"
    if not _text(values, "measured_by"):
        errors["measured_by"] = "Measured by is required"
    return errors


def ensure_valid(errors: Dict[str, str]) -> None:
    if errors:
        raise ValidationError(errors)
