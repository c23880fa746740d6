"""
RECORD STORE GATEWAY
====================

Translates customer requests into record store operations and holds no state
of its own. Each write commits its own transaction.

Operation | Store calls                 | Photo failure
----------|-----------------------------|-------------------------------
list/get  | one select                  | n/a
create    | photo put, then insert      | logged; record saved without photo_url
update    | photo put (overwrite), then update | raised as UploadError
delete    | select, then delete         | n/a

A photo put followed by a failed record write leaves the blob behind; there is
no cleanup and no retry anywhere in this module.
"""

from __future__ import annotations

import logging
from collections.abc import Generator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.sql import Select

from app.crm.constants import NATIONALITY_DOMESTIC, NATIONALITY_FOREIGN
from app.crm.errors import BackendError, NotFoundError, UploadError, ValidationError
from app.crm.modules.customers.models import Customer
from app.crm.modules.customers.photos import PhotoUpload, upload_photo
from app.crm.modules.customers.validation import (
    parse_dob,
    raise_for_errors,
    validate_create_payload,
    validate_update_payload,
)
from app.crm.storage import Storage

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("name", "email", "phone", "address", "dob", "nationality", "country")


def parse_customer_id(raw: Any) -> int:
    if isinstance(raw, int):
        return raw
    try:
        return int(str(raw).strip())
    except (TypeError, ValueError):
        raise ValidationError("Customer id must be a number.")


def _parse_bound(raw: str) -> datetime:
    """ISO date or datetime; a bare date is midnight. Returned as naive UTC like created_at."""
    text = raw.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(text)
    except ValueError:
        raise ValidationError(f"Invalid date: {raw}")
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


@dataclass(frozen=True)
class CustomerQuery:
    id: int | None = None
    nationality: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    search: str = ""

    @classmethod
    def from_args(cls, args: Mapping[str, Any]) -> "CustomerQuery":
        raw_id = (args.get("id") or "").strip()
        start = (args.get("startDate") or "").strip()
        end = (args.get("endDate") or "").strip()
        # The range only applies when both bounds are given.
        has_range = bool(start and end)
        return cls(
            id=parse_customer_id(raw_id) if raw_id else None,
            nationality=(args.get("nationality") or "").strip() or None,
            start_date=_parse_bound(start) if has_range else None,
            end_date=_parse_bound(end) if has_range else None,
            search=args.get("search") or "",
        )


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _filtered_select(query: CustomerQuery) -> Select:
    stmt = select(Customer)
    if query.id is not None:
        stmt = stmt.where(Customer.id == query.id)
    if query.nationality:
        stmt = stmt.where(Customer.nationality == query.nationality)
    if query.start_date is not None and query.end_date is not None:
        stmt = stmt.where(Customer.created_at >= query.start_date, Customer.created_at <= query.end_date)
    if query.search:
        like = f"%{_escape_like(query.search)}%"
        stmt = stmt.where(or_(Customer.name.ilike(like, escape="\\"), Customer.email.ilike(like, escape="\\")))
    return stmt


@contextmanager
def _store_call(s: Session, action: str) -> Generator[None, None, None]:
    try:
        yield
    except SQLAlchemyError as e:
        s.rollback()
        logger.error("Record store %s failed: %s", action, e)
        raise BackendError(str(getattr(e, "orig", None) or e)) from e


def find_customers(s: Session, query: CustomerQuery | None = None) -> list[Customer]:
    stmt = _filtered_select(query or CustomerQuery()).order_by(Customer.id.asc())
    with _store_call(s, "select"):
        return list(s.scalars(stmt).all())


def get_customer(s: Session, customer_id: int, query: CustomerQuery | None = None) -> Customer:
    base = query or CustomerQuery()
    stmt = _filtered_select(
        CustomerQuery(
            id=customer_id,
            nationality=base.nationality,
            start_date=base.start_date,
            end_date=base.end_date,
            search=base.search,
        )
    )
    with _store_call(s, "select"):
        c = s.scalars(stmt).one_or_none()
    if c is None:
        raise NotFoundError(f"Customer {customer_id} not found")
    return c


def _present_fields(payload: Mapping[str, Any]) -> dict[str, str]:
    return {k: str(payload.get(k) or "").strip() for k in EDITABLE_FIELDS if k in payload}


def create_customer(
    s: Session,
    payload: Mapping[str, Any],
    photo: PhotoUpload | None = None,
    *,
    storage: Storage,
) -> Customer:
    raise_for_errors(validate_create_payload(payload))
    fields = _present_fields(payload)

    name = fields["name"]
    nationality = fields.get("nationality") or NATIONALITY_DOMESTIC
    country = (fields.get("country") or None) if nationality == NATIONALITY_FOREIGN else None

    photo_url: str | None = None
    if photo is not None:
        try:
            photo_url = upload_photo(storage, photo, owner_name=name, overwrite=False)
        except UploadError as e:
            # Record creation never blocks on the photo.
            logger.warning("Photo upload failed for new customer %r; saving without photo: %s", name, e.message)

    now = datetime.utcnow()
    c = Customer(
        name=name,
        email=fields["email"],
        phone=fields["phone"],
        address=fields.get("address") or None,
        dob=parse_dob(fields.get("dob")),
        nationality=nationality,
        country=country,
        photo_url=photo_url,
        created_at=now,
        updated_at=now,
    )
    with _store_call(s, "insert"):
        s.add(c)
        s.commit()
    logger.info("Created customer id=%s photo=%s", c.id, bool(photo_url))
    return c


def update_customer(
    s: Session,
    customer_id: Any,
    payload: Mapping[str, Any],
    photo: PhotoUpload | None = None,
    *,
    storage: Storage,
) -> Customer:
    if customer_id is None or str(customer_id).strip() == "":
        raise ValidationError("ID is required for updates")
    cid = parse_customer_id(customer_id)
    raise_for_errors(validate_update_payload(payload))

    c = get_customer(s, cid)
    fields = _present_fields(payload)

    if photo is not None:
        owner_name = fields.get("name") or c.name
        try:
            c.photo_url = upload_photo(storage, photo, owner_name=owner_name, overwrite=True)
        except UploadError as e:
            logger.error("Photo upload failed while updating customer id=%s: %s", cid, e.message)
            raise UploadError("Error processing file upload", details=e.message) from e

    for attr in ("name", "email", "phone"):
        if attr in fields:
            setattr(c, attr, fields[attr])
    if "address" in fields:
        c.address = fields["address"] or None
    if "dob" in fields:
        c.dob = parse_dob(fields["dob"])
    if fields.get("nationality"):
        c.nationality = fields["nationality"]
    if "country" in fields:
        c.country = fields["country"] or None
    if c.nationality != NATIONALITY_FOREIGN:
        c.country = None
    c.updated_at = datetime.utcnow()

    with _store_call(s, "update"):
        s.commit()
    logger.info("Updated customer id=%s fields=%s photo=%s", c.id, sorted(fields), photo is not None)
    return c


def delete_customer(s: Session, customer_id: Any) -> dict[str, Any]:
    """Delete a customer and return the record as it was before the delete."""
    if customer_id is None or str(customer_id).strip() == "":
        raise ValidationError("ID is required for deletes")
    c = get_customer(s, parse_customer_id(customer_id))
    snapshot = c.to_dict()
    with _store_call(s, "delete"):
        s.delete(c)
        s.commit()
    logger.info("Deleted customer id=%s", snapshot["id"])
    return snapshot
