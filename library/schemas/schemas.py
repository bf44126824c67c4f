import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class LoanRequest(BaseModel):
    book_id: int = Field(gt=0)
    customer_id: int = Field(gt=0)
    begin_date: datetime.date
    end_date: datetime.date


class LoanBookOut(BaseModel):
    id: int
    isbn: str
    title: str


class LoanCustomerOut(BaseModel):
    id: int
    first_name: str
    last_name: str
    email: str


class LoanOut(BaseModel):
    book: LoanBookOut
    customer: LoanCustomerOut
    begin_date: datetime.date
    end_date: datetime.date
    status: str


class CategoryIn(BaseModel):
    code: str
    label: str = ""


class CategoryOut(BaseModel):
    code: str
    label: str


class BookCreate(BaseModel):
    title: str
    isbn: str
    author: str
    category_code: Optional[str] = None
    release_date: Optional[datetime.date] = None
    total_copies: int = Field(default=1, ge=0)


class BookUpdate(BaseModel):
    title: Optional[str] = None
    isbn: Optional[str] = None
    author: Optional[str] = None
    category_code: Optional[str] = None
    release_date: Optional[datetime.date] = None
    total_copies: Optional[int] = Field(default=None, ge=0)


class BookOut(BaseModel):
    id: int
    title: str
    isbn: str
    author: str
    category: Optional[CategoryOut] = None
    release_date: Optional[datetime.date] = None
    register_date: datetime.date
    total_copies: int


class CustomerCreate(BaseModel):
    first_name: str
    last_name: str
    job: Optional[str] = None
    address: Optional[str] = None
    email: str


class CustomerUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    job: Optional[str] = None
    address: Optional[str] = None
    email: Optional[str] = None


class CustomerOut(BaseModel):
    id: int
    first_name: str
    last_name: str
    job: Optional[str] = None
    address: Optional[str] = None
    email: str
    creation_date: datetime.datetime


class CustomerPage(BaseModel):
    items: List[CustomerOut]
    page: int
    size: int
    total: int
