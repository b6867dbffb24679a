"""
Pydantic schemas for request/response validation.

This module contains:
- Request models for incoming account and message payloads
- Record models returned by the store and serialized by the API
- Health check response model
"""

from typing import Optional

from pydantic import BaseModel, Field


# =============================================================================
# Pydantic Request Models
# =============================================================================

class AccountCredentials(BaseModel):
    """
    Request body for POST /register and POST /login.

    Fields are optional on purpose: a missing username or password is a
    business-rule rejection decided by AccountService, not a schema error.
    """
    username: Optional[str] = Field(None, description="Unique account username")
    password: Optional[str] = Field(None, description="Account password (at least 4 characters)")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"username": "alice", "password": "pass1"}
            ]
        }
    }


class MessageCreate(BaseModel):
    """Request body for POST /messages."""
    posted_by: Optional[int] = Field(None, description="account_id of the author")
    message_text: Optional[str] = Field(None, description="Message text (1-255 characters)")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"posted_by": 1, "message_text": "hi"}
            ]
        }
    }


class MessageTextUpdate(BaseModel):
    """Request body for PATCH /messages/{message_id}."""
    message_text: Optional[str] = Field(None, description="Replacement message text")


# =============================================================================
# Pydantic Record Models
# =============================================================================

class AccountRecord(BaseModel):
    """
    A persisted account.
    Returned by the store and serialized as-is, password included.
    """
    account_id: int = Field(..., description="Store-assigned account identifier")
    username: str = Field(..., description="Account username")
    password: str = Field(..., description="Account password")

    model_config = {
        "from_attributes": True,  # Allow creating from ORM objects
    }


class MessageRecord(BaseModel):
    """A persisted message."""
    message_id: int = Field(..., description="Store-assigned message identifier")
    posted_by: int = Field(..., description="account_id of the author")
    message_text: str = Field(..., description="Message text")
    time_posted_epoch: int = Field(..., description="Creation time in epoch seconds")

    model_config = {
        "from_attributes": True,
    }


class HealthResponse(BaseModel):
    """Response model for health check endpoints."""
    status: str = Field(..., description="Health status")
    reason: Optional[str] = Field(None, description="Reason if not ready")
