"""Tests for customer form and gateway validation rules."""
from datetime import date

import pytest

from app.crm.errors import ValidationError
from app.crm.modules.customers.validation import (
    FUTURE_DOB_MESSAGE,
    PHOTO_REQUIRED_MESSAGE,
    REQUIRED_FIELDS_MESSAGE,
    dob_in_future,
    is_valid_email,
    parse_dob,
    raise_for_errors,
    validate_create_payload,
    validate_customer_form,
    validate_update_payload,
)

TODAY = date(2025, 6, 15)

FULL_FORM = {
    "name": "Ada",
    "email": "ada@x.com",
    "phone": "555",
    "address": "1 Analytical St",
    "dob": "1990-12-10",
    "nationality": "WNI",
    "country": "",
}


def _fields(errs):
    return [e.field for e in errs]


class TestDobRules:
    def test_today_is_allowed(self):
        assert dob_in_future("2025-06-15", TODAY) is False

    def test_tomorrow_is_future(self):
        assert dob_in_future("2025-06-16", TODAY) is True

    def test_parse_dob(self):
        assert parse_dob("2020-01-01") == date(2020, 1, 1)
        assert parse_dob("") is None
        assert parse_dob(None) is None

    @pytest.mark.parametrize("raw", ["01/02/2020", "2020-1-1", "2020-02-30", "soon"])
    def test_parse_dob_rejects_bad_values(self, raw):
        with pytest.raises(ValueError):
            parse_dob(raw)


class TestCreateForm:
    def test_complete_form_passes(self):
        assert validate_customer_form(FULL_FORM, photo_present=True, creating=True, today=TODAY) == []

    def test_photo_required_on_create(self):
        errs = validate_customer_form(FULL_FORM, photo_present=False, creating=True, today=TODAY)
        assert _fields(errs) == ["photo"]
        assert errs[0].message == PHOTO_REQUIRED_MESSAGE

    def test_required_inputs(self):
        errs = validate_customer_form({}, photo_present=True, creating=True, today=TODAY)
        assert _fields(errs) == ["name", "email", "phone", "address", "dob"]

    def test_future_dob_rejected(self):
        form = dict(FULL_FORM, dob="2025-06-16")
        errs = validate_customer_form(form, photo_present=True, creating=True, today=TODAY)
        assert [(e.field, e.message) for e in errs] == [("dob", FUTURE_DOB_MESSAGE)]

    def test_email_shape_checked(self):
        form = dict(FULL_FORM, email="not-an-email")
        errs = validate_customer_form(form, photo_present=True, creating=True, today=TODAY)
        assert _fields(errs) == ["email"]

    def test_phone_format_not_checked(self):
        form = dict(FULL_FORM, phone="call me maybe")
        assert validate_customer_form(form, photo_present=True, creating=True, today=TODAY) == []

    def test_foreign_without_country_is_accepted(self):
        form = dict(FULL_FORM, nationality="WNA", country="")
        assert validate_customer_form(form, photo_present=True, creating=True, today=TODAY) == []

    def test_unknown_nationality(self):
        form = dict(FULL_FORM, nationality="XYZ")
        errs = validate_customer_form(form, photo_present=True, creating=True, today=TODAY)
        assert _fields(errs) == ["nationality"]


class TestEditForm:
    def test_nothing_required_on_edit(self):
        assert validate_customer_form({}, photo_present=False, creating=False, today=TODAY) == []

    def test_future_dob_still_rejected(self):
        errs = validate_customer_form({"dob": "2030-01-01"}, photo_present=False, creating=False, today=TODAY)
        assert _fields(errs) == ["dob"]


class TestGatewayPayload:
    def test_name_email_phone_required(self):
        errs = validate_create_payload({"name": "Ada"}, today=TODAY)
        assert _fields(errs) == ["email", "phone"]
        assert {e.message for e in errs} == {REQUIRED_FIELDS_MESSAGE}

    def test_dob_optional_at_gateway(self):
        assert validate_create_payload({"name": "Ada", "email": "a", "phone": "1"}, today=TODAY) == []

    def test_email_format_not_checked_at_gateway(self):
        assert validate_create_payload({"name": "Ada", "email": "nope", "phone": "1"}, today=TODAY) == []

    def test_update_checks_only_present_fields(self):
        assert validate_update_payload({"address": ""}, today=TODAY) == []
        errs = validate_update_payload({"name": "  "}, today=TODAY)
        assert _fields(errs) == ["name"]


def test_raise_for_errors_joins_unique_messages():
    errs = validate_create_payload({}, today=TODAY)
    with pytest.raises(ValidationError) as exc:
        raise_for_errors(errs)
    assert exc.value.message == REQUIRED_FIELDS_MESSAGE
    assert exc.value.status_code == 400
    assert [f["field"] for f in exc.value.fields] == ["name", "email", "phone"]


def test_raise_for_errors_noop_when_clean():
    raise_for_errors([])


@pytest.mark.parametrize(
    "value,ok",
    [("ada@x.com", True), ("a.b+c@sub.example.org", True), ("ada@localhost", True), ("ada", False), ("@x.com", False)],
)
def test_is_valid_email(value, ok):
    assert is_valid_email(value) is ok
