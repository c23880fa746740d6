from datetime import datetime

import pytest
from werkzeug.security import generate_password_hash

from app.crm import auth as auth_module
from app.crm import create_app
from app.crm.db import session_scope
from app.crm.models import Base, User
from app.crm.modules.customers.models import Customer


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("STORAGE_BACKEND", "local")
    monkeypatch.setenv("LOCAL_STORAGE_ROOT", str(tmp_path / "storage"))
    for k in (
        "S3_ENDPOINT",
        "S3_REGION",
        "S3_BUCKET",
        "S3_ACCESS_KEY_ID",
        "S3_SECRET_ACCESS_KEY",
        "PHOTO_PUBLIC_BASE_URL",
        "MAX_PHOTO_BYTES",
    ):
        monkeypatch.delenv(k, raising=False)
    auth_module._login_attempts.clear()

    app = create_app()

    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)

    with session_scope(app) as s:
        s.add(User(username="admin", password_hash=generate_password_hash("admin123"), is_active=True))

    return app


@pytest.fixture()
def anon_client(app):
    return app.test_client()


@pytest.fixture()
def client(app):
    c = app.test_client()
    r = c.post("/auth/login", json={"username": "admin", "password": "admin123"})
    assert r.status_code == 200
    c.environ_base["HTTP_X_CSRF_TOKEN"] = r.json["csrf_token"]
    return c


@pytest.fixture()
def make_customer(app):
    """Insert a customer row directly, with a chosen created_at."""

    def _make(name, email, *, created_at=None, nationality="WNI", phone="555", **extra):
        with session_scope(app) as s:
            c = Customer(
                name=name,
                email=email,
                phone=phone,
                nationality=nationality,
                created_at=created_at or datetime(2024, 1, 10, 9, 0),
                updated_at=created_at or datetime(2024, 1, 10, 9, 0),
                **extra,
            )
            s.add(c)
            s.flush()
            return c.id

    return _make
