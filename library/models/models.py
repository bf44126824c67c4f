import enum

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
)
from sqlalchemy.orm import relationship

from library.config.db import Base


class LoanStatus(str, enum.Enum):
    OPEN = "OPEN"
    CLOSE = "CLOSE"


class Category(Base):
    __tablename__ = "categories"
    code = Column(String(32), primary_key=True)
    label = Column(String, nullable=False, default="")

    books = relationship("Book", back_populates="category")


class Book(Base):
    __tablename__ = "books"
    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    isbn = Column(String, unique=True, index=True, nullable=False)  # normalized upper-case
    author = Column(String, nullable=False)
    category_code = Column(String(32), ForeignKey("categories.code"), nullable=True)
    release_date = Column(Date, nullable=True)
    register_date = Column(Date, nullable=False)
    total_copies = Column(Integer, nullable=False, default=1)

    category = relationship("Category", back_populates="books")
    loans = relationship("Loan", back_populates="book", cascade="all, delete")

    def __repr__(self):
        return f"<Book(id={self.id}, isbn='{self.isbn}', title='{self.title}')>"


class Customer(Base):
    __tablename__ = "customers"
    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False, index=True)
    job = Column(String, nullable=True)
    address = Column(String, nullable=True)
    email = Column(String, unique=True, index=True, nullable=False)  # normalized lower-case
    creation_date = Column(DateTime, nullable=False)

    loans = relationship("Loan", back_populates="customer", cascade="all, delete")

    def __repr__(self):
        return f"<Customer(id={self.id}, email='{self.email}')>"


class Loan(Base):
    """
    The current loan relationship between one book and one customer.

    The (book_id, customer_id) pair is the primary key, so a pair owns a single
    row. Returning a book flips ``status`` to CLOSE; a later loan of the same
    book to the same customer reopens that row.
    """

    __tablename__ = "loans"
    __table_args__ = (
        CheckConstraint("begin_date <= end_date", name="ck_loan_dates_ordered"),
        Index("ix_loans_end_date", "end_date"),
        Index("ix_loans_customer_status", "customer_id", "status"),
    )

    book_id = Column(
        Integer, ForeignKey("books.id", ondelete="CASCADE"), primary_key=True
    )
    customer_id = Column(
        Integer, ForeignKey("customers.id", ondelete="CASCADE"), primary_key=True
    )
    begin_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    status = Column(
        Enum(LoanStatus, name="loan_status"), nullable=False, default=LoanStatus.OPEN
    )

    book = relationship("Book", back_populates="loans")
    customer = relationship("Customer", back_populates="loans")

    @property
    def key(self):
        return (self.book_id, self.customer_id)

    def __repr__(self):
        return (
            f"<Loan(book_id={self.book_id}, customer_id={self.customer_id}, "
            f"status={self.status.value if self.status else None})>"
        )
