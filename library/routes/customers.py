from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from library.config.db import get_db
from library.config.settings import settings
from library.models.models import Customer
from library.schemas.schemas import (
    CustomerCreate,
    CustomerOut,
    CustomerPage,
    CustomerUpdate,
)
from library.services.customers import CustomerDirectory
from library.services.errors import ConflictError, NotFoundError

router = APIRouter(prefix="/customers", tags=["customers"])


def get_directory(db: Session = Depends(get_db)) -> CustomerDirectory:
    return CustomerDirectory(db)


def customer_out(customer: Customer) -> dict:
    return {
        "id": customer.id,
        "first_name": customer.first_name,
        "last_name": customer.last_name,
        "job": customer.job,
        "address": customer.address,
        "email": customer.email,
        "creation_date": customer.creation_date,
    }


def _check_email(email: Optional[str]) -> None:
    if email is not None and "@" not in email:
        raise HTTPException(status_code=400, detail="Invalid email format")


@router.post("", response_model=CustomerOut, status_code=status.HTTP_201_CREATED)
def create_customer(
    customer: CustomerCreate, directory: CustomerDirectory = Depends(get_directory)
):
    """
    Registers a new customer unless the email is already taken.

    Parameters:
        customer (CustomerCreate): The customer data.
        directory (CustomerDirectory): The customer directory.

    Returns:
        CustomerOut: The registered customer.

    Raises:
        HTTPException: 400 if the email format is invalid, 409 if it is taken.
    """
    _check_email(customer.email)
    try:
        created = directory.create_customer(**customer.model_dump())
    except ConflictError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    return customer_out(created)


@router.put("/{customer_id}", response_model=CustomerOut)
def update_customer(
    customer_id: int,
    customer: CustomerUpdate,
    directory: CustomerDirectory = Depends(get_directory),
):
    """
    Updates the given fields of an existing customer.

    Raises:
        HTTPException: 404 if the customer does not exist, 409 if the new email
                        belongs to another customer.
    """
    _check_email(customer.email)
    try:
        updated = directory.update_customer(
            customer_id, **customer.model_dump(exclude_unset=True)
        )
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except ConflictError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    return customer_out(updated)


@router.delete("/{customer_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_customer(
    customer_id: int, directory: CustomerDirectory = Depends(get_directory)
):
    """
    Deletes a customer and all of its loans. Deleting an unknown customer
    does nothing.
    """
    directory.delete_customer(customer_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("", response_model=CustomerPage)
def list_customers(
    page: int = Query(0, ge=0),
    size: Optional[int] = Query(None, ge=1),
    directory: CustomerDirectory = Depends(get_directory),
):
    size = min(size or settings.default_page_size, settings.max_page_size)
    items, total = directory.list_customers(page, size)
    return {
        "items": [customer_out(customer) for customer in items],
        "page": page,
        "size": size,
        "total": total,
    }


@router.get("/search/email", response_model=CustomerOut)
def search_customer_by_email(
    email: str, directory: CustomerDirectory = Depends(get_directory)
):
    customer = directory.find_customer_by_email(email)
    if customer is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return customer_out(customer)


@router.get("/search/last-name", response_model=List[CustomerOut])
def search_customers_by_last_name(
    last_name: str, directory: CustomerDirectory = Depends(get_directory)
):
    customers = directory.find_customers_by_last_name(last_name)
    if not customers:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return [customer_out(customer) for customer in customers]
