import os

import pytest
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Keep the application engine off the working directory
os.environ.setdefault("DATABASE_URL", "sqlite://")

from library.config.db import Base, build_engine, get_db  # noqa: E402
from library.models import models  # noqa: E402,F401
from library.services.catalog import CatalogService  # noqa: E402
from library.services.customers import CustomerDirectory  # noqa: E402
from library.services.loan_store import LoanStore  # noqa: E402
from library.services.loans import LoanService  # noqa: E402


@pytest.fixture
def engine():
    engine = build_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def catalog(db):
    return CatalogService(db)


@pytest.fixture
def directory(db):
    return CustomerDirectory(db)


@pytest.fixture
def store(db):
    return LoanStore(db)


@pytest.fixture
def loans(db):
    return LoanService(db)


@pytest.fixture
def book(catalog):
    return catalog.create_book(
        title="Les Misérables", isbn="ISBN-1", author="Victor Hugo"
    )


@pytest.fixture
def other_book(catalog):
    return catalog.create_book(title="Notre-Dame de Paris", isbn="ISBN-2", author="Victor Hugo")


@pytest.fixture
def customer(directory):
    return directory.create_customer(first_name="Ada", last_name="Lovelace", email="a@x.com")


@pytest.fixture
def client(session_factory):
    from fastapi.testclient import TestClient

    from library.main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
