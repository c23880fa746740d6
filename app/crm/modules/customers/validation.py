"""
Field-level checks for customer submissions.

Two layers use these rules:

- the add/edit forms (`validate_customer_form`), which mirror what the browser
  enforces before submitting: required inputs, `type=email`, date of birth
  not in the future, photo required on create;
- the record store gateway (`validate_create_payload`, `validate_update_payload`),
  which re-checks only the server-side subset.

Dates are compared as ISO `YYYY-MM-DD` strings, which orders the same way as
the dates themselves once the format has been checked.
"""
from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import asdict, dataclass
from datetime import date
from typing import Any

from app.crm.constants import NATIONALITY_CODES
from app.crm.errors import ValidationError

REQUIRED_FIELDS_MESSAGE = "Name, email, and phone are required fields"
FUTURE_DOB_MESSAGE = "Date of birth cannot be in the future"
INVALID_DOB_MESSAGE = "Date of birth must be a valid date (YYYY-MM-DD)"
PHOTO_REQUIRED_MESSAGE = "Please upload a photo."

GATEWAY_REQUIRED = ("name", "email", "phone")
CREATE_FORM_REQUIRED = ("name", "email", "phone", "address", "dob")

_LABELS = {
    "name": "Name",
    "email": "Email",
    "phone": "Phone",
    "address": "Address",
    "dob": "Date of birth",
    "nationality": "Nationality",
    "country": "Country",
    "photo": "Photo",
}

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
# Same shape the browser accepts for <input type="email">.
_EMAIL_RE = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$"
)


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str


def _clean(value: Any) -> str:
    return str(value or "").strip()


def today_iso(today: date | None = None) -> str:
    return (today or date.today()).isoformat()


def dob_in_future(dob: str, today: date | None = None) -> bool:
    return dob > today_iso(today)


def parse_dob(raw: str | None) -> date | None:
    """Parse a `YYYY-MM-DD` date of birth; blank means no date."""
    value = _clean(raw)
    if not value:
        return None
    if not _ISO_DATE_RE.match(value):
        raise ValueError(INVALID_DOB_MESSAGE)
    return date.fromisoformat(value)


def _check_dob(raw: str | None, today: date | None) -> FieldError | None:
    value = _clean(raw)
    if not value:
        return None
    try:
        parse_dob(value)
    except ValueError:
        return FieldError("dob", INVALID_DOB_MESSAGE)
    if dob_in_future(value, today):
        return FieldError("dob", FUTURE_DOB_MESSAGE)
    return None


def _check_nationality(raw: str | None) -> FieldError | None:
    value = _clean(raw)
    if value and value not in NATIONALITY_CODES:
        return FieldError("nationality", f"Nationality must be one of: {', '.join(sorted(NATIONALITY_CODES))}")
    return None


def is_valid_email(value: str) -> bool:
    return bool(_EMAIL_RE.match(value))


def validate_customer_form(
    form: Mapping[str, Any],
    *,
    photo_present: bool,
    creating: bool,
    today: date | None = None,
) -> list[FieldError]:
    errs: list[FieldError] = []
    if creating:
        for field in CREATE_FORM_REQUIRED:
            if not _clean(form.get(field)):
                errs.append(FieldError(field, f"{_LABELS[field]} is required."))

    email = _clean(form.get("email"))
    if email and not is_valid_email(email):
        errs.append(FieldError("email", "Email must be a valid email address."))

    for err in (_check_dob(form.get("dob"), today), _check_nationality(form.get("nationality"))):
        if err:
            errs.append(err)

    if creating and not photo_present:
        errs.append(FieldError("photo", PHOTO_REQUIRED_MESSAGE))
    return errs


def validate_create_payload(payload: Mapping[str, Any], *, today: date | None = None) -> list[FieldError]:
    errs: list[FieldError] = []
    for field in GATEWAY_REQUIRED:
        if not _clean(payload.get(field)):
            errs.append(FieldError(field, REQUIRED_FIELDS_MESSAGE))
    for err in (_check_dob(payload.get("dob"), today), _check_nationality(payload.get("nationality"))):
        if err:
            errs.append(err)
    return errs


def validate_update_payload(payload: Mapping[str, Any], *, today: date | None = None) -> list[FieldError]:
    """Only fields present in the payload are checked (partial update)."""
    errs: list[FieldError] = []
    for field in GATEWAY_REQUIRED:
        if field in payload and not _clean(payload.get(field)):
            errs.append(FieldError(field, f"{_LABELS[field]} cannot be blank."))
    for err in (_check_dob(payload.get("dob"), today), _check_nationality(payload.get("nationality"))):
        if err:
            errs.append(err)
    return errs


def raise_for_errors(errs: list[FieldError]) -> None:
    if not errs:
        return
    message = "; ".join(dict.fromkeys(e.message for e in errs))
    raise ValidationError(message, fields=[asdict(e) for e in errs])
