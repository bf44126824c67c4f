from datetime import date
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from library.config.db import get_db
from library.models.models import Loan
from library.schemas.schemas import LoanOut, LoanRequest
from library.services.errors import ConflictError, InvalidLoanError, NotFoundError
from library.services.loans import LoanService

router = APIRouter(prefix="/loans", tags=["loans"])


def get_loan_service(db: Session = Depends(get_db)) -> LoanService:
    return LoanService(db)


def loan_out(loan: Loan) -> dict:
    return {
        "book": {
            "id": loan.book.id,
            "isbn": loan.book.isbn,
            "title": loan.book.title,
        },
        "customer": {
            "id": loan.customer.id,
            "first_name": loan.customer.first_name,
            "last_name": loan.customer.last_name,
            "email": loan.customer.email,
        },
        "begin_date": loan.begin_date,
        "end_date": loan.end_date,
        "status": loan.status.value,
    }


@router.post("", response_model=LoanOut, status_code=status.HTTP_201_CREATED)
def create_loan(request: LoanRequest, service: LoanService = Depends(get_loan_service)):
    """
    Lends a book to a customer.

    Parameters:
        request (LoanRequest): Book id, customer id and the loan dates.
        service (LoanService): The loan lifecycle service.

    Returns:
        LoanOut: The opened loan.

    Raises:
        HTTPException: 400 if the dates are not ordered, 404 if the book or the
                        customer does not exist, 409 if the pair already has an
                        open loan.
    """
    try:
        loan = service.request_loan(
            request.book_id, request.customer_id, request.begin_date, request.end_date
        )
    except InvalidLoanError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except ConflictError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    return loan_out(loan)


@router.post("/close", response_model=LoanOut)
def close_loan(request: LoanRequest, service: LoanService = Depends(get_loan_service)):
    """
    Marks the open loan of a book to a customer as closed.

    Parameters:
        request (LoanRequest): Book id, customer id and the loan dates.
        service (LoanService): The loan lifecycle service.

    Returns:
        LoanOut: The closed loan, or an empty 204 response when there was no
                 open loan to close.
    """
    try:
        loan = service.close_loan(
            request.book_id, request.customer_id, request.begin_date, request.end_date
        )
    except NotFoundError:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return loan_out(loan)


@router.get("/max-end-date", response_model=List[LoanOut])
def loans_ending_before(
    max_end_date: date = Query(..., alias="date"),
    service: LoanService = Depends(get_loan_service),
):
    """
    Lists loans, open or closed, whose end date is before the given date.
    """
    return [loan_out(loan) for loan in service.find_loans_ending_before(max_end_date)]


@router.get("/customer", response_model=List[LoanOut])
def customer_open_loans(
    email: str, service: LoanService = Depends(get_loan_service)
):
    """
    Lists the open loans of the customer with this email, most recent first.
    """
    return [loan_out(loan) for loan in service.find_open_loans_for_customer(email)]
