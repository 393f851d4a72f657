import os

os.environ.setdefault("RATE_LIMIT", "10000/minute")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ["OPENAI_API_KEY"] = ""
os.environ["EMAIL_FUNCTION_URL"] = ""
os.environ["SMTP_HOST"] = ""

import itertools

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from erphub.auth.security import create_access_token, get_password_hash
from erphub.db import Base, get_db
from erphub.models import models  # noqa: F401  (registers tables)
from erphub.models.models import Company, User
from erphub.services.context import context_for_user


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def company(db):
    c = Company(name="Acme Trading", address="1 Harbour Road", phone="+971 4 000 0000", email="info@acme.test")
    db.add(c)
    db.commit()
    db.refresh(c)
    return c


_seq = itertools.count(1)


@pytest.fixture
def make_user(db):
    def _make(role="staff", company=None, password="secret123", first_name="Test", last_name=None):
        n = next(_seq)
        user = User(
            email=f"user{n}@example.com",
            password_hash=get_password_hash(password),
            first_name=first_name,
            last_name=last_name or f"User{n}",
            role=role,
            company_id=company.id if company is not None else None,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def admin(make_user, company):
    return make_user(role="admin", company=company, first_name="Ada")


@pytest.fixture
def staff(make_user, company):
    return make_user(role="staff", company=company, first_name="Sam")


@pytest.fixture
def ctx():
    return context_for_user


def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token(str(user.id), role=user.role)}"}


@pytest.fixture
def client(session_factory):
    from erphub.main import app

    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth():
    return auth_headers
