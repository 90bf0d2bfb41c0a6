"""
Database service layer for the FastAPI application.

Each method performs a single document-store operation for one route. Store
exceptions are logged and re-raised as StoreFailure with a per-operation
message; NotFound and InvalidInput pass through untouched.
"""

import functools
from typing import Any, Dict, List

import structlog
from bson import ObjectId

from api.errors import APIError, InvalidInput, NotFound, StoreFailure
from api.models import to_jsonable
from api.store import DocumentStore

logger = structlog.get_logger(__name__)


def store_operation(failure_message: str):
    """Translate unexpected errors from the wrapped coroutine into StoreFailure."""

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(self, *args, **kwargs):
            try:
                return await func(self, *args, **kwargs)
            except APIError:
                raise
            except Exception as e:
                logger.error(failure_message, operation=func.__name__, error=str(e))
                raise StoreFailure(failure_message) from e
        return wrapper

    return decorator


def parse_object_id(value: str, kind: str) -> ObjectId:
    """
    Parse a path identifier into an ObjectId.

    Raises:
        InvalidInput: If ``value`` is not a 24-character hex ObjectId
    """
    if not ObjectId.is_valid(value):
        raise InvalidInput(f"Invalid {kind} ID format")
    return ObjectId(value)


def update_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    """Fields for a ``$set`` update; the identifier is never rewritten."""
    fields = {key: value for key, value in data.items() if key != "_id"}
    if not fields:
        raise InvalidInput("No fields to update")
    return fields


class APIDatabaseService:
    """Database service for API operations."""

    def __init__(self, store: DocumentStore):
        self.store = store
        self.users = store.users
        self.books = store.books

    # Users

    @store_operation("Error inserting user")
    async def find_or_create_user(self, user: Dict[str, Any]) -> bool:
        """
        Insert a user unless one with the same email exists.

        Args:
            user: Client-supplied user record, including a string ``email``

        Returns:
            True if a new record was inserted, False for an existing user
        """
        email = user.get("email")
        if not isinstance(email, str) or not email:
            raise InvalidInput("Email is required")

        existing = await self.users.find_one({"email": email})
        if existing:
            logger.info("Existing user logged in", user_id=str(existing["_id"]))
            return False

        user_id = await self.users.insert_one(dict(user))
        logger.info("User created", user_id=str(user_id))
        return True

    @store_operation("Error fetching user")
    async def get_user_by_id(self, user_id: str) -> Dict[str, Any]:
        user = await self.users.find_one({"_id": parse_object_id(user_id, "user")})
        if not user:
            raise NotFound("User not found")
        return to_jsonable(user)

    @store_operation("Error fetching user")
    async def get_user_by_email(self, email: str) -> Dict[str, Any]:
        user = await self.users.find_one({"email": email})
        if not user:
            raise NotFound("User not found")
        return to_jsonable(user)

    @store_operation("Error updating user")
    async def update_user(self, user_id: str, data: Dict[str, Any]) -> None:
        object_id = parse_object_id(user_id, "user")
        matched = await self.users.update_one({"_id": object_id}, update_fields(data))
        if matched == 0:
            raise NotFound("User not found")
        logger.info("User updated", user_id=user_id)

    # Books

    @store_operation("Error inserting book")
    async def create_book(self, book: Dict[str, Any]) -> str:
        """Insert a book and return its identifier as a string."""
        book_id = await self.books.insert_one(dict(book))
        logger.info("Book created", book_id=str(book_id))
        return str(book_id)

    @store_operation("Error fetching books")
    async def list_books(self) -> List[Dict[str, Any]]:
        return [to_jsonable(book) for book in await self.books.find_all()]

    @store_operation("Error fetching book")
    async def get_book(self, book_id: str) -> Dict[str, Any]:
        book = await self.books.find_one({"_id": parse_object_id(book_id, "book")})
        if not book:
            raise NotFound("Book not found")
        return to_jsonable(book)

    @store_operation("Error updating book")
    async def update_book(self, book_id: str, data: Dict[str, Any]) -> None:
        object_id = parse_object_id(book_id, "book")
        matched = await self.books.update_one({"_id": object_id}, update_fields(data))
        if matched == 0:
            raise NotFound("Book not found")
        logger.info("Book updated", book_id=book_id)

    @store_operation("Error deleting book")
    async def delete_book(self, book_id: str) -> None:
        object_id = parse_object_id(book_id, "book")
        deleted = await self.books.delete_one({"_id": object_id})
        if deleted == 0:
            raise NotFound("Book not found")
        logger.info("Book deleted", book_id=book_id)

    # TODO: group by each book's "category" field once the response shape is agreed with clients.
    @store_operation("Error fetching categories")
    async def list_categories(self) -> List[Dict[str, Any]]:
        """Return the full book collection, same as ``list_books``."""
        return [to_jsonable(book) for book in await self.books.find_all()]

    async def health_check(self) -> Dict[str, Any]:
        """
        Perform database health check.

        Returns:
            Dictionary with health status
        """
        if await self.store.ping():
            return {"status": "healthy"}
        return {"status": "unhealthy"}
