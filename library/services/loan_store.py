import logging
from datetime import date
from typing import List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, joinedload
from sqlalchemy.orm.exc import FlushError

from library.models.models import Customer, Loan, LoanStatus
from library.services.customers import normalize_email
from library.services.errors import ConflictError, PersistenceError

logger = logging.getLogger(__name__)


class LoanStore:
    """
    Query and write primitives over the ``loans`` table.

    Nothing is committed here; the calling service owns the transaction.
    """

    def __init__(self, db: Session):
        self.db = db

    def _query(self):
        return self.db.query(Loan).options(
            joinedload(Loan.book), joinedload(Loan.customer)
        )

    def find_by_composite_key(
        self, book_id: int, customer_id: int, for_update: bool = False
    ) -> Optional[Loan]:
        query = self.db.query(Loan).filter(
            Loan.book_id == book_id, Loan.customer_id == customer_id
        )
        if for_update:
            query = query.with_for_update()
        try:
            return query.first()
        except SQLAlchemyError as exc:
            raise self._fail("lookup", exc) from exc

    def find_by_composite_key_and_status(
        self, book_id: int, customer_id: int, status: LoanStatus
    ) -> Optional[Loan]:
        try:
            return (
                self._query()
                .filter(
                    Loan.book_id == book_id,
                    Loan.customer_id == customer_id,
                    Loan.status == status,
                )
                .first()
            )
        except SQLAlchemyError as exc:
            raise self._fail("lookup", exc) from exc

    def find_by_end_date_before(self, max_end_date: date) -> List[Loan]:
        try:
            return self._query().filter(Loan.end_date < max_end_date).all()
        except SQLAlchemyError as exc:
            raise self._fail("end date search", exc) from exc

    def find_open_loans_by_customer_email(
        self, email: str, status: LoanStatus = LoanStatus.OPEN
    ) -> List[Loan]:
        """
        Returns the customer's loans in the given status, joined through the
        unique email index. Rows come back in composite key order.
        """
        try:
            return (
                self._query()
                .join(Customer, Loan.customer_id == Customer.id)
                .filter(Customer.email == normalize_email(email), Loan.status == status)
                .order_by(Loan.book_id, Loan.customer_id)
                .all()
            )
        except SQLAlchemyError as exc:
            raise self._fail("customer search", exc) from exc

    def insert(self, loan: Loan) -> Loan:
        """
        Inserts a brand new row. A primary key collision means another
        transaction created the pair first and is reported as a conflict.
        """
        book_id, customer_id = loan.book_id, loan.customer_id
        self.db.add(loan)
        try:
            self.db.flush()
        except (IntegrityError, FlushError) as exc:
            self.db.rollback()
            if self.find_by_composite_key(book_id, customer_id) is not None:
                raise ConflictError(
                    f"A loan already exists for book {book_id} "
                    f"and customer {customer_id}"
                ) from exc
            raise self._fail("insert", exc) from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise self._fail("insert", exc) from exc
        return loan

    def save(self, loan: Loan) -> Loan:
        """Insert-or-update keyed by (book_id, customer_id)."""
        try:
            merged = self.db.merge(loan)
            self.db.flush()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise self._fail("save", exc) from exc
        return merged

    @staticmethod
    def _fail(action: str, exc: Exception) -> PersistenceError:
        logger.error("Loan store %s failed: %s", action, exc)
        return PersistenceError(f"Loan store {action} failed")
