from datetime import date

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Query

from library.models.models import Loan
from library.services.errors import ConflictError, NotFoundError, PersistenceError


def test_create_customer(directory):
    customer = directory.create_customer(
        first_name="Grace", last_name="Hopper", job="Admiral", email=" Grace@Navy.mil "
    )

    assert customer.id is not None
    assert customer.email == "grace@navy.mil"
    assert customer.creation_date is not None


def test_create_customer_duplicate_email(directory, customer):
    with pytest.raises(ConflictError):
        directory.create_customer(first_name="Other", last_name="Person", email="A@X.COM")


def test_find_customer_by_email(directory, customer):
    assert directory.find_customer_by_email("A@x.com").id == customer.id
    assert directory.find_customer_by_email("b@x.com") is None


def test_find_customers_by_last_name(directory, customer):
    directory.create_customer(first_name="Byron", last_name="LOVELACE", email="b@x.com")

    found = directory.find_customers_by_last_name("lovelace")

    assert [c.first_name for c in found] == ["Ada", "Byron"]


def test_update_customer(directory, customer):
    updated = directory.update_customer(customer.id, job="Mathematician", email="ADA@x.com")

    assert updated.job == "Mathematician"
    assert updated.email == "ada@x.com"
    assert updated.first_name == "Ada"


def test_update_customer_email_taken(directory, customer):
    other = directory.create_customer(first_name="Alan", last_name="Turing", email="t@x.com")

    with pytest.raises(ConflictError):
        directory.update_customer(other.id, email="a@x.com")


def test_update_customer_same_email_is_fine(directory, customer):
    assert directory.update_customer(customer.id, email="A@X.com").email == "a@x.com"


def test_update_unknown_customer(directory):
    with pytest.raises(NotFoundError):
        directory.update_customer(404, job="None")


def test_list_customers_pages(directory):
    for n in range(5):
        directory.create_customer(first_name=f"C{n}", last_name="Reader", email=f"c{n}@x.com")

    first, total = directory.list_customers(0, 2)
    last, _ = directory.list_customers(2, 2)

    assert total == 5
    assert [c.first_name for c in first] == ["C0", "C1"]
    assert [c.first_name for c in last] == ["C4"]


def test_delete_customer_removes_its_loans(db, directory, loans, book, other_book, customer):
    loans.request_loan(book.id, customer.id, date(2024, 1, 1), date(2024, 1, 2))
    loans.request_loan(other_book.id, customer.id, date(2024, 1, 1), date(2024, 1, 2))
    loans.close_loan(other_book.id, customer.id)

    assert directory.delete_customer(customer.id) is True

    assert not directory.customer_exists(customer.id)
    assert db.query(Loan).count() == 0


def test_delete_unknown_customer(directory):
    assert directory.delete_customer(404) is False


def test_directory_query_failure_is_persistence_error(directory, customer, monkeypatch):
    def broken_all(self):
        raise OperationalError("SELECT", {}, Exception("database is gone"))

    monkeypatch.setattr(Query, "all", broken_all)

    with pytest.raises(PersistenceError):
        directory.find_customers_by_last_name("Lovelace")
