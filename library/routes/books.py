from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from library.config.db import get_db
from library.models.models import Book, Category
from library.schemas.schemas import (
    BookCreate,
    BookOut,
    BookUpdate,
    CategoryIn,
    CategoryOut,
)
from library.services.catalog import CatalogService
from library.services.errors import ConflictError, NotFoundError

router = APIRouter(prefix="/books", tags=["books"])
category_router = APIRouter(prefix="/categories", tags=["categories"])


def get_catalog(db: Session = Depends(get_db)) -> CatalogService:
    return CatalogService(db)


def category_out(category: Category) -> dict:
    return {"code": category.code, "label": category.label}


def book_out(book: Book) -> dict:
    return {
        "id": book.id,
        "title": book.title,
        "isbn": book.isbn,
        "author": book.author,
        "category": category_out(book.category) if book.category else None,
        "release_date": book.release_date,
        "register_date": book.register_date,
        "total_copies": book.total_copies,
    }


@router.post("", response_model=BookOut, status_code=status.HTTP_201_CREATED)
def create_book(book: BookCreate, catalog: CatalogService = Depends(get_catalog)):
    """
    Registers a new book unless its ISBN is already in the catalog.

    Parameters:
        book (BookCreate): The book data.
        catalog (CatalogService): The catalog service.

    Returns:
        BookOut: The registered book.

    Raises:
        HTTPException: 409 if the ISBN exists, 404 if the category is unknown.
    """
    try:
        created = catalog.create_book(**book.model_dump())
    except ConflictError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return book_out(created)


@router.put("/{book_id}", response_model=BookOut)
def update_book(
    book_id: int, book: BookUpdate, catalog: CatalogService = Depends(get_catalog)
):
    """
    Updates the given fields of an existing book.

    Raises:
        HTTPException: 404 if the book or the category does not exist,
                        409 if the new ISBN belongs to another book.
    """
    try:
        updated = catalog.update_book(book_id, **book.model_dump(exclude_unset=True))
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except ConflictError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    return book_out(updated)


@router.delete("/{book_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_book(book_id: int, catalog: CatalogService = Depends(get_catalog)):
    """
    Deletes a book and its loans. Deleting an unknown book does nothing.
    """
    catalog.delete_book(book_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/search/title", response_model=List[BookOut])
def search_books_by_title(title: str, catalog: CatalogService = Depends(get_catalog)):
    books = catalog.find_books_by_title(title)
    if not books:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return [book_out(book) for book in books]


@router.get("/search/isbn", response_model=BookOut)
def search_book_by_isbn(isbn: str, catalog: CatalogService = Depends(get_catalog)):
    book = catalog.find_book_by_isbn(isbn)
    if book is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return book_out(book)


@router.get("/category/{code}", response_model=List[BookOut])
def books_by_category(code: str, catalog: CatalogService = Depends(get_catalog)):
    return [book_out(book) for book in catalog.find_books_by_category(code)]


@category_router.get("", response_model=List[CategoryOut])
def list_categories(catalog: CatalogService = Depends(get_catalog)):
    return [category_out(category) for category in catalog.list_categories()]


@category_router.post(
    "", response_model=CategoryOut, status_code=status.HTTP_201_CREATED
)
def create_category(category: CategoryIn, catalog: CatalogService = Depends(get_catalog)):
    try:
        created = catalog.create_category(category.code, category.label)
    except ConflictError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    return category_out(created)
