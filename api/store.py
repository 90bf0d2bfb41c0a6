"""
Document store used by the API.

``DocumentStore`` exposes the two namespaces (users, books) as
``DocumentCollection`` objects. ``MongoDocumentStore`` backs them with Motor;
tests substitute their own collections.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import structlog
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection
from pymongo.errors import ConnectionFailure
from pymongo.server_api import ServerApi

logger = structlog.get_logger(__name__)

Document = Dict[str, Any]


class DocumentCollection(ABC):
    """One namespace of schemaless records addressed by ``_id`` or field match."""

    @abstractmethod
    async def find_one(self, query: Document) -> Optional[Document]:
        """Return the first document matching ``query`` exactly, or None."""

    @abstractmethod
    async def find_all(self) -> List[Document]:
        """Return every document in the collection."""

    @abstractmethod
    async def insert_one(self, document: Document) -> Any:
        """Insert a document and return its store-assigned identifier."""

    @abstractmethod
    async def update_one(self, query: Document, fields: Document) -> int:
        """Set ``fields`` on the first match; return the number matched."""

    @abstractmethod
    async def delete_one(self, query: Document) -> int:
        """Delete the first match; return the number deleted."""


class MongoCollection(DocumentCollection):
    """DocumentCollection over a Motor collection."""

    def __init__(self, collection: AsyncIOMotorCollection):
        self.collection = collection

    async def find_one(self, query: Document) -> Optional[Document]:
        return await self.collection.find_one(query)

    async def find_all(self) -> List[Document]:
        return await self.collection.find().to_list(length=None)

    async def insert_one(self, document: Document) -> Any:
        result = await self.collection.insert_one(document)
        return result.inserted_id

    async def update_one(self, query: Document, fields: Document) -> int:
        result = await self.collection.update_one(query, {"$set": fields})
        return result.matched_count

    async def delete_one(self, query: Document) -> int:
        result = await self.collection.delete_one(query)
        return result.deleted_count


class DocumentStore:
    """The users and books namespaces behind the API."""

    def __init__(self, users: DocumentCollection, books: DocumentCollection):
        self.users = users
        self.books = books

    async def ping(self) -> bool:
        """Return True when the backing store is reachable."""
        return True

    async def close(self) -> None:
        """Release the backing store."""


class MongoDocumentStore(DocumentStore):
    """
    Motor-backed store.

    One client is shared by all in-flight requests; Motor pools connections
    internally.
    """

    def __init__(
        self,
        connection_url: str,
        user_database: str = "userDB",
        user_collection: str = "userCollection",
        books_database: str = "booksDB",
        books_collection: str = "booksCollection",
    ):
        self.connection_url = connection_url
        self.client = AsyncIOMotorClient(
            connection_url,
            server_api=ServerApi("1", strict=True, deprecation_errors=True),
        )
        self.user_database = user_database
        self.books_database = books_database
        super().__init__(
            users=MongoCollection(self.client[user_database][user_collection]),
            books=MongoCollection(self.client[books_database][books_collection]),
        )

    @classmethod
    def from_config(cls, config) -> "MongoDocumentStore":
        return cls(
            config.database_url,
            user_database=config.user_database,
            user_collection=config.user_collection,
            books_database=config.books_database,
            books_collection=config.books_collection,
        )

    async def connect(self) -> None:
        """Verify the connection; raises ConnectionFailure if unreachable."""
        try:
            await self.client.admin.command("ping")
            logger.info("Successfully connected to MongoDB",
                        user_database=self.user_database,
                        books_database=self.books_database)
        except ConnectionFailure as e:
            logger.error("Failed to connect to MongoDB", error=str(e))
            raise

    async def ping(self) -> bool:
        try:
            await self.client.admin.command("ping")
            return True
        except Exception as e:
            logger.error("Database health check failed", error=str(e))
            return False

    async def close(self) -> None:
        self.client.close()
        logger.info("Disconnected from MongoDB")
