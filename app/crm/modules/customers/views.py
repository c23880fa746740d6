from __future__ import annotations

import mimetypes
from dataclasses import replace

from flask import Blueprint, abort, current_app, jsonify, redirect, request, send_file

from app.crm.access import require_login
from app.crm.db import db_session
from app.crm.errors import ValidationError
from app.crm.modules.customers.api import request_fields, request_photo
from app.crm.modules.customers.filtering import FilterSpec, apply_filters
from app.crm.modules.customers.service import (
    CustomerQuery,
    create_customer,
    delete_customer,
    find_customers,
    get_customer,
    update_customer,
)
from app.crm.modules.customers.validation import raise_for_errors, validate_customer_form
from app.crm.storage import LocalStorage, StorageError, storage_from_config

bp = Blueprint("customers", __name__)


@bp.get("/customers")
@require_login
def customers_list():
    """
    List view: the store applies the query-string filters, then the list engine
    re-applies the same FilterSpec and sorts. Both passes always run.
    """
    try:
        spec = FilterSpec.from_args(request.args)
    except ValueError as e:
        raise ValidationError(str(e))
    query = replace(CustomerQuery.from_args(request.args), id=None)

    s = db_session()
    records = [c.to_dict() for c in find_customers(s, query)]
    customers = apply_filters(records, spec)
    return jsonify({"customers": customers, "count": len(customers), "sort_by": str(spec.sort_by)})


@bp.get("/customers/<int:customer_id>")
@require_login
def customer_detail(customer_id: int):
    s = db_session()
    return jsonify(get_customer(s, customer_id).to_dict())


@bp.post("/customers/new")
@require_login
def customers_new_post():
    form = request_fields()
    photo = request_photo()
    raise_for_errors(validate_customer_form(form, photo_present=photo is not None, creating=True))

    s = db_session()
    c = create_customer(s, form, photo, storage=storage_from_config(current_app.config))
    return jsonify({"message": "Customer added successfully!", "data": c.to_dict()}), 201


@bp.post("/customers/<int:customer_id>/edit")
@require_login
def customer_edit_post(customer_id: int):
    form = request_fields()
    photo = request_photo()
    raise_for_errors(validate_customer_form(form, photo_present=photo is not None, creating=False))

    s = db_session()
    c = update_customer(s, customer_id, form, photo, storage=storage_from_config(current_app.config))
    return jsonify({"message": "Customer updated successfully.", "data": c.to_dict()})


@bp.post("/customers/<int:customer_id>/delete")
@require_login
def customer_delete_post(customer_id: int):
    s = db_session()
    snapshot = delete_customer(s, customer_id)
    return jsonify({"message": "Customer deleted successfully.", "data": snapshot})


@bp.get("/photos/<path:key>")
def photo_get(key: str):
    storage = storage_from_config(current_app.config)
    if not isinstance(storage, LocalStorage):
        return redirect(storage.public_url(key), code=302)
    try:
        fobj = storage.open(key)
    except (FileNotFoundError, IsADirectoryError, StorageError):
        abort(404)
    return send_file(
        fobj,
        mimetype=mimetypes.guess_type(key)[0] or "application/octet-stream",
        download_name=key.rsplit("/", 1)[-1],
    )
