import logging
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import func

from library.models.models import Customer
from library.services.base import Service
from library.services.errors import ConflictError, NotFoundError

logger = logging.getLogger(__name__)

_EDITABLE = ("first_name", "last_name", "job", "address", "email")


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


class CustomerDirectory(Service):
    """Create/read/update/delete for customers. Emails are unique, ignoring case."""

    def create_customer(self, **fields) -> Customer:
        email = normalize_email(fields.get("email"))
        if self.find_customer_by_email(email) is not None:
            raise ConflictError(f"Customer with email {email} already exists")

        customer = Customer(
            first_name=fields["first_name"],
            last_name=fields["last_name"],
            job=fields.get("job"),
            address=fields.get("address"),
            email=email,
            creation_date=datetime.now(),
        )
        self.db.add(customer)
        self._commit("create customer")
        logger.info("Created customer %s (%s)", customer.id, customer.email)
        return customer

    def update_customer(self, customer_id: int, **fields) -> Customer:
        customer = self.get_customer(customer_id)
        if customer is None:
            raise NotFoundError(f"Customer {customer_id} not found")

        if fields.get("email") is not None:
            email = normalize_email(fields["email"])
            owner = self.find_customer_by_email(email)
            if owner is not None and owner.id != customer.id:
                raise ConflictError(f"Customer with email {email} already exists")
            fields["email"] = email

        for name in _EDITABLE:
            if fields.get(name) is not None:
                setattr(customer, name, fields[name])
        self._commit("update customer")
        return customer

    def delete_customer(self, customer_id: int) -> bool:
        """Deletes the customer and its loans. Unknown ids are ignored."""
        customer = self.get_customer(customer_id)
        if customer is None:
            return False
        self.db.delete(customer)
        self._commit("delete customer")
        logger.info("Deleted customer %s and its loans", customer_id)
        return True

    def customer_exists(self, customer_id: int) -> bool:
        return self.get_customer(customer_id) is not None

    def get_customer(self, customer_id: int) -> Optional[Customer]:
        return self._read("load customer", lambda: self.db.get(Customer, customer_id))

    def find_customer_by_email(self, email: str) -> Optional[Customer]:
        query = self.db.query(Customer).filter(Customer.email == normalize_email(email))
        return self._read("search customers", query.first)

    def find_customers_by_last_name(self, last_name: str) -> List[Customer]:
        query = (
            self.db.query(Customer)
            .filter(func.lower(Customer.last_name) == last_name.strip().lower())
            .order_by(Customer.id)
        )
        return self._read("search customers", query.all)

    def list_customers(self, page: int, size: int) -> Tuple[List[Customer], int]:
        """Returns one page of customers (pages start at 0) and the total count."""
        page = max(page, 0)
        size = max(size, 1)
        total = self._read(
            "count customers", self.db.query(func.count(Customer.id)).scalar
        )
        query = (
            self.db.query(Customer)
            .order_by(Customer.id)
            .offset(page * size)
            .limit(size)
        )
        return self._read("list customers", query.all), total
