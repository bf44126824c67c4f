import logging
from datetime import date
from typing import List, Optional

from sqlalchemy import func

from library.models.models import Book, Category
from library.services.base import Service
from library.services.errors import ConflictError, NotFoundError

logger = logging.getLogger(__name__)

_EDITABLE = (
    "title",
    "isbn",
    "author",
    "category_code",
    "release_date",
    "register_date",
    "total_copies",
)


def normalize_isbn(isbn: str) -> str:
    return (isbn or "").strip().upper()


class CatalogService(Service):
    """Books and their categories. ISBNs are unique, ignoring case."""

    def create_category(self, code: str, label: str = "") -> Category:
        if self.get_category(code) is not None:
            raise ConflictError(f"Category {code} already exists")
        category = Category(code=code, label=label)
        self.db.add(category)
        self._commit("create category")
        return category

    def get_category(self, code: str) -> Optional[Category]:
        return self._read("load category", lambda: self.db.get(Category, code))

    def list_categories(self) -> List[Category]:
        return self._read(
            "list categories", self.db.query(Category).order_by(Category.code).all
        )

    def _check_category(self, code: Optional[str]) -> None:
        if code and self.get_category(code) is None:
            raise NotFoundError(f"Category {code} not found")

    def create_book(self, **fields) -> Book:
        isbn = normalize_isbn(fields.get("isbn"))
        if self.find_book_by_isbn(isbn) is not None:
            raise ConflictError(f"Book with ISBN {isbn} already exists")
        self._check_category(fields.get("category_code"))

        book = Book(
            title=fields["title"],
            isbn=isbn,
            author=fields["author"],
            category_code=fields.get("category_code"),
            release_date=fields.get("release_date"),
            register_date=fields.get("register_date") or date.today(),
            total_copies=1 if fields.get("total_copies") is None else fields["total_copies"],
        )
        self.db.add(book)
        self._commit("create book")
        logger.info("Registered book %s (ISBN %s)", book.id, book.isbn)
        return book

    def update_book(self, book_id: int, **fields) -> Book:
        book = self.get_book(book_id)
        if book is None:
            raise NotFoundError(f"Book {book_id} not found")

        if fields.get("isbn") is not None:
            isbn = normalize_isbn(fields["isbn"])
            owner = self.find_book_by_isbn(isbn)
            if owner is not None and owner.id != book.id:
                raise ConflictError(f"Book with ISBN {isbn} already exists")
            fields["isbn"] = isbn
        self._check_category(fields.get("category_code"))

        for name in _EDITABLE:
            if fields.get(name) is not None:
                setattr(book, name, fields[name])
        self._commit("update book")
        return book

    def delete_book(self, book_id: int) -> bool:
        """Deletes the book and its loans. Unknown ids are ignored."""
        book = self.get_book(book_id)
        if book is None:
            return False
        self.db.delete(book)
        self._commit("delete book")
        logger.info("Deleted book %s and its loans", book_id)
        return True

    def book_exists(self, book_id: int) -> bool:
        return self.get_book(book_id) is not None

    def get_book(self, book_id: int) -> Optional[Book]:
        return self._read("load book", lambda: self.db.get(Book, book_id))

    def find_book_by_isbn(self, isbn: str) -> Optional[Book]:
        query = self.db.query(Book).filter(Book.isbn == normalize_isbn(isbn))
        return self._read("search books", query.first)

    def find_books_by_title(self, title: str) -> List[Book]:
        pattern = f"%{title.strip().lower()}%"
        query = (
            self.db.query(Book)
            .filter(func.lower(Book.title).like(pattern))
            .order_by(Book.id)
        )
        return self._read("search books", query.all)

    def find_books_by_category(self, code: str) -> List[Book]:
        query = (
            self.db.query(Book)
            .join(Category, Book.category_code == Category.code)
            .filter(Category.code == code)
            .order_by(Book.id)
        )
        return self._read("search books", query.all)
