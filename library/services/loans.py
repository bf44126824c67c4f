import logging
from datetime import date
from typing import List, Optional

from sqlalchemy.orm import Session

from library.models.models import Loan, LoanStatus
from library.services.base import Service
from library.services.catalog import CatalogService
from library.services.customers import CustomerDirectory
from library.services.errors import ConflictError, InvalidLoanError, NotFoundError
from library.services.loan_store import LoanStore

logger = logging.getLogger(__name__)


class LoanService(Service):
    """
    Loan lifecycle: a (book, customer) pair is lent with status OPEN and later
    closed. The pair has a single row; lending it again after a close reopens
    that row with the new dates.
    """

    def __init__(
        self,
        db: Session,
        store: Optional[LoanStore] = None,
        catalog: Optional[CatalogService] = None,
        customers: Optional[CustomerDirectory] = None,
    ):
        super().__init__(db)
        self.store = store or LoanStore(db)
        self.catalog = catalog or CatalogService(db)
        self.customers = customers or CustomerDirectory(db)

    def request_loan(
        self, book_id: int, customer_id: int, begin_date: date, end_date: date
    ) -> Loan:
        """
        Lends a book to a customer.

        Raises:
            InvalidLoanError: begin_date is after end_date.
            NotFoundError: the book or the customer does not exist.
            ConflictError: the pair already has an OPEN loan.
            PersistenceError: the store failed; nothing was written.
        """
        if begin_date > end_date:
            raise InvalidLoanError(
                f"Loan begin date {begin_date} is after end date {end_date}"
            )
        book = self.catalog.get_book(book_id)
        if book is None:
            raise NotFoundError(f"Book {book_id} not found")
        customer = self.customers.get_customer(customer_id)
        if customer is None:
            raise NotFoundError(f"Customer {customer_id} not found")

        loan = self.store.find_by_composite_key(book_id, customer_id, for_update=True)
        if loan is not None and loan.status == LoanStatus.OPEN:
            self.db.rollback()
            logger.info(
                "Declined loan of book %s to customer %s: already open",
                book_id,
                customer_id,
            )
            raise ConflictError(
                f"A loan already exists for book {book_id} and customer {customer_id}"
            )

        if loan is None:
            loan = self.store.insert(
                Loan(
                    book_id=book.id,
                    customer_id=customer.id,
                    book=book,
                    customer=customer,
                    begin_date=begin_date,
                    end_date=end_date,
                    status=LoanStatus.OPEN,
                )
            )
        else:
            loan.begin_date = begin_date
            loan.end_date = end_date
            loan.status = LoanStatus.OPEN
            loan = self.store.save(loan)
        self._commit("request loan")

        logger.info(
            "Opened loan of book %s to customer %s (%s to %s)",
            book_id,
            customer_id,
            begin_date,
            end_date,
        )
        return loan

    def close_loan(
        self,
        book_id: int,
        customer_id: int,
        begin_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Loan:
        """
        Marks the pair's OPEN loan as CLOSE. The row stays in the store.

        The dates come with the request payload and are not compared with the
        stored ones.

        Raises:
            NotFoundError: there is no OPEN loan for the pair.
            PersistenceError: the store failed; nothing was written.
        """
        loan = self.store.find_by_composite_key_and_status(
            book_id, customer_id, LoanStatus.OPEN
        )
        if loan is None:
            logger.info(
                "No open loan to close for book %s and customer %s",
                book_id,
                customer_id,
            )
            raise NotFoundError(
                f"No open loan for book {book_id} and customer {customer_id}"
            )

        loan.status = LoanStatus.CLOSE
        loan = self.store.save(loan)
        self._commit("close loan")
        logger.info("Closed loan of book %s to customer %s", book_id, customer_id)
        return loan

    def get_open_loan(self, book_id: int, customer_id: int) -> Optional[Loan]:
        return self.store.find_by_composite_key_and_status(
            book_id, customer_id, LoanStatus.OPEN
        )

    def loan_exists(self, book_id: int, customer_id: int) -> bool:
        return self.get_open_loan(book_id, customer_id) is not None

    def find_loans_ending_before(self, max_end_date: date) -> List[Loan]:
        """All loans, open or closed, whose end date is before max_end_date."""
        loans = self.store.find_by_end_date_before(max_end_date)
        return [loan for loan in loans if loan is not None]

    def find_open_loans_for_customer(self, email: str) -> List[Loan]:
        """Open loans of the customer with this email, latest begin date first."""
        loans = self.store.find_open_loans_by_customer_email(email, LoanStatus.OPEN)
        loans = [loan for loan in loans if loan is not None]
        # sorted() is stable with reverse=True, ties keep store order
        return sorted(loans, key=lambda loan: loan.begin_date, reverse=True)
