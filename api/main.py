"""
FastAPI application for the Bookshelf API.

Users sign up (or log in) by email and receive a bearer token; creating,
updating and deleting books and updating users require that token.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import structlog
from fastapi import Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.auth import get_token_service, require_user
from api.config import APIConfig, get_config
from api.database import APIDatabaseService
from api.errors import APIError, InvalidInput
from api.middleware import RequestLoggingMiddleware
from api.models import (
    BookCreatedResponse, ErrorResponse, HealthResponse,
    LoginResponse, MessageResponse, TokenResponse,
)
from api.store import DocumentStore, MongoDocumentStore
from api.tokens import TokenService

logger = structlog.get_logger(__name__)

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


def get_db_service(request: Request) -> APIDatabaseService:
    return request.app.state.db_service


async def json_object(request: Request) -> Dict[str, Any]:
    """
    Read the request body as a JSON object.

    Declared after ``require_user`` on gated routes so the token is checked
    before the body is parsed.

    Raises:
        InvalidInput: If the body is not valid JSON or not an object
    """
    try:
        data = await request.json()
    except ValueError as e:
        raise InvalidInput("Request body must be a JSON object") from e
    if not isinstance(data, dict):
        raise InvalidInput("Request body must be a JSON object")
    return data


def create_app(
    config: Optional[APIConfig] = None,
    store: Optional[DocumentStore] = None,
    tokens: Optional[TokenService] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        config: Settings; loaded from the environment when omitted
        store: Document store; a MongoDocumentStore is opened in the lifespan
            and closed at shutdown when omitted. A supplied store is left open.
        tokens: Token service; built from ``config`` when omitted

    Raises:
        pydantic.ValidationError: If required settings are missing
    """
    settings = config or get_config()
    token_service = tokens or TokenService(
        settings.jwt_secret,
        expires_in=timedelta(days=settings.token_expire_days),
        algorithm=settings.jwt_algorithm,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager."""
        logger.info("Starting Bookshelf API", version=settings.api_version)

        document_store = store
        if document_store is None:
            document_store = MongoDocumentStore.from_config(settings)
            try:
                await document_store.connect()
            except Exception:
                await document_store.close()
                raise

        app.state.config = settings
        app.state.tokens = token_service
        app.state.db_service = APIDatabaseService(document_store)

        try:
            yield
        finally:
            logger.info("Shutting down Bookshelf API")
            if store is None:
                await document_store.close()

    app = FastAPI(
        title=settings.api_title,
        description=settings.api_description,
        version=settings.api_version,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )
    app.add_middleware(RequestLoggingMiddleware)

    register_exception_handlers(app, settings)
    register_routes(app, settings)
    return app


def register_exception_handlers(app: FastAPI, settings: APIConfig) -> None:
    @app.exception_handler(APIError)
    async def api_error_handler(request: Request, exc: APIError):
        """Map every APIError to its status with a short message."""
        headers = None
        if exc.status_code == status.HTTP_401_UNAUTHORIZED:
            headers = {"WWW-Authenticate": "Bearer"}
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(message=exc.message).model_dump(),
            headers=headers,
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle general exceptions."""
        logger.error("Unhandled exception", error=str(exc), path=request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ErrorResponse(
                message=f"Internal server error: {exc}" if settings.debug else "Internal server error"
            ).model_dump(),
        )


def register_routes(app: FastAPI, settings: APIConfig) -> None:
    # Health check endpoint (no authentication required)
    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check(db: APIDatabaseService = Depends(get_db_service)):
        """Report whether the document store is reachable."""
        health_info = await db.health_check()
        db_status = health_info.get("status", "unknown")
        return HealthResponse(
            status="healthy" if db_status == "healthy" else "degraded",
            timestamp=datetime.now(timezone.utc),
            version=settings.api_version,
            database_status=db_status,
        )

    # Users endpoints
    @app.post(
        "/user",
        status_code=status.HTTP_201_CREATED,
        tags=["Users"],
        responses={200: {"model": LoginResponse}, 201: {"model": TokenResponse}, **ERROR_RESPONSES},
    )
    async def create_user(
        user: Dict[str, Any] = Depends(json_object),
        db: APIDatabaseService = Depends(get_db_service),
        tokens: TokenService = Depends(get_token_service),
    ):
        """
        Sign up, or log in when the email is already registered.

        A new email creates a user and returns 201 with a token; a known
        email returns 200 with a fresh token and inserts nothing.
        """
        created = await db.find_or_create_user(user)
        token = tokens.issue(user)
        if created:
            return JSONResponse(
                status_code=status.HTTP_201_CREATED,
                content=TokenResponse(token=token).model_dump(),
            )
        return JSONResponse(content=LoginResponse(token=token).model_dump())

    @app.get("/user/get/{user_id}", tags=["Users"], responses=ERROR_RESPONSES)
    async def get_user(user_id: str, db: APIDatabaseService = Depends(get_db_service)):
        """Get a user by identifier."""
        return JSONResponse(content=await db.get_user_by_id(user_id))

    @app.get("/user/{auth_info}", tags=["Users"], responses=ERROR_RESPONSES)
    async def get_user_by_email(auth_info: str, db: APIDatabaseService = Depends(get_db_service)):
        """Get a user by email."""
        return JSONResponse(content=await db.get_user_by_email(auth_info))

    @app.patch("/user/{user_id}", response_model=MessageResponse, tags=["Users"], responses=ERROR_RESPONSES)
    async def update_user(
        user_id: str,
        current_user: str = Depends(require_user),
        data: Dict[str, Any] = Depends(json_object),
        db: APIDatabaseService = Depends(get_db_service),
    ):
        """Set the given fields on a user."""
        await db.update_user(user_id, data)
        return MessageResponse(message="User updated successfully")

    # Books endpoints
    @app.post(
        "/books",
        response_model=BookCreatedResponse,
        status_code=status.HTTP_201_CREATED,
        tags=["Books"],
        responses=ERROR_RESPONSES,
    )
    async def create_book(
        current_user: str = Depends(require_user),
        book: Dict[str, Any] = Depends(json_object),
        db: APIDatabaseService = Depends(get_db_service),
    ):
        """Insert a book."""
        book_id = await db.create_book(book)
        logger.info("Book inserted", book_id=book_id, user=current_user)
        return BookCreatedResponse(bookId=book_id)

    @app.get("/books", tags=["Books"], responses=ERROR_RESPONSES)
    async def get_books(db: APIDatabaseService = Depends(get_db_service)):
        """List every book."""
        return JSONResponse(content=await db.list_books())

    @app.get("/books/{book_id}", tags=["Books"], responses=ERROR_RESPONSES)
    async def get_book(book_id: str, db: APIDatabaseService = Depends(get_db_service)):
        """Get a single book by identifier."""
        return JSONResponse(content=await db.get_book(book_id))

    @app.patch("/books/{book_id}", response_model=MessageResponse, tags=["Books"], responses=ERROR_RESPONSES)
    async def update_book(
        book_id: str,
        current_user: str = Depends(require_user),
        data: Dict[str, Any] = Depends(json_object),
        db: APIDatabaseService = Depends(get_db_service),
    ):
        """Set the given fields on a book."""
        await db.update_book(book_id, data)
        return MessageResponse(message="Book updated successfully")

    @app.delete("/books/{book_id}", response_model=MessageResponse, tags=["Books"], responses=ERROR_RESPONSES)
    async def delete_book(
        book_id: str,
        db: APIDatabaseService = Depends(get_db_service),
        current_user: str = Depends(require_user),
    ):
        """Delete a book."""
        await db.delete_book(book_id)
        return MessageResponse(message="Book deleted successfully")

    # Categories endpoint
    @app.get("/categories", tags=["Categories"], responses=ERROR_RESPONSES)
    async def get_categories(db: APIDatabaseService = Depends(get_db_service)):
        """List categories. Currently returns every book, ungrouped."""
        return JSONResponse(content=await db.list_categories())
