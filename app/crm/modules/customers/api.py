from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from flask import Blueprint, current_app, jsonify, request

from app.crm.access import require_login
from app.crm.constants import NO_CACHE_HEADERS
from app.crm.db import db_session
from app.crm.errors import BackendError, ValidationError
from app.crm.modules.customers.photos import PhotoUpload
from app.crm.modules.customers.service import (
    CustomerQuery,
    create_customer,
    delete_customer,
    find_customers,
    get_customer,
    update_customer,
)
from app.crm.storage import storage_from_config

bp = Blueprint("customers_api", __name__)

API_PREFIX = "/api/customers"


@bp.after_app_request
def _no_cache(response):
    # Applied app-wide so 405s and auth failures on the endpoint are covered too.
    if request.path.startswith(API_PREFIX):
        for header, value in NO_CACHE_HEADERS.items():
            response.headers[header] = value
    return response


def request_fields() -> Mapping[str, Any]:
    if request.is_json:
        data = request.get_json(silent=True)
        return data if isinstance(data, dict) else {}
    return request.form


def request_photo() -> PhotoUpload | None:
    photo = PhotoUpload.from_file_storage(request.files.get("photo"))
    limit = int(current_app.config.get("MAX_PHOTO_BYTES") or 0)
    if photo is not None and limit and len(photo.data) > limit:
        raise ValidationError(f"Photo is too large (maximum {limit // (1024 * 1024)}MB).")
    return photo


@bp.route("", methods=["GET", "POST", "PUT", "DELETE"])
@require_login
def customers_endpoint():
    s = db_session()

    if request.method == "GET":
        query = CustomerQuery.from_args(request.args)
        if query.id is not None:
            return jsonify(get_customer(s, query.id, query).to_dict())
        return jsonify([c.to_dict() for c in find_customers(s, query)])

    if request.method == "POST":
        storage = storage_from_config(current_app.config)
        try:
            c = create_customer(s, request_fields(), request_photo(), storage=storage)
        except BackendError as e:
            e.details = e.details or "Failed to create customer record"
            raise
        return jsonify(c.to_dict()), 201

    if request.method == "PUT":
        storage = storage_from_config(current_app.config)
        c = update_customer(s, request.args.get("id"), request_fields(), request_photo(), storage=storage)
        return jsonify(c.to_dict())

    snapshot = delete_customer(s, request.args.get("id"))
    return jsonify({"status": "success", "message": "Customer deleted successfully.", "data": snapshot})
