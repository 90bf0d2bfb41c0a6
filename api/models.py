"""
API models and schemas for the FastAPI application.

User and book records are schemaless; only the response envelopes around them
are modelled here.
"""

from datetime import datetime
from typing import Any, Dict

from bson import ObjectId
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field


def to_jsonable(document: Dict[str, Any]) -> Dict[str, Any]:
    """Render a stored document as JSON-safe data, ObjectIds as hex strings."""
    return jsonable_encoder(document, custom_encoder={ObjectId: str})


class TokenResponse(BaseModel):
    """Response for a first-time signup."""
    token: str = Field(..., description="Bearer token for gated routes")


class LoginResponse(BaseModel):
    """Response for a signup with an already-registered email."""
    status: str = Field("success", description="Outcome")
    message: str = Field("Login success", description="Human-readable outcome")
    token: str = Field(..., description="Bearer token for gated routes")


class MessageResponse(BaseModel):
    """Plain acknowledgement."""
    message: str = Field(..., description="Human-readable outcome")


class BookCreatedResponse(BaseModel):
    """Response for a newly inserted book."""
    message: str = Field("Book inserted", description="Human-readable outcome")
    bookId: str = Field(..., description="Identifier of the new book")


class ErrorResponse(BaseModel):
    """Error response model."""
    message: str = Field(..., description="Error message")


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Current timestamp")
    version: str = Field(..., description="API version")
    database_status: str = Field(..., description="Database connection status")
