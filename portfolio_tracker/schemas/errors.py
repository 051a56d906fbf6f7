# portfolio_tracker/schemas/errors.py
"""
Error response bodies.

Every non-2xx response from the API uses one of these two shapes; the
handlers in main.py build them.
"""

from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    error: str = Field(
        ...,
        examples=["InvalidTickerError", "HoldingNotFoundError"],
        description="Exception class name"
    )
    message: str = Field(..., description="What went wrong, for humans")
    details: dict | None = Field(
        default=None,
        description="Structured context, e.g. the rejected ticker or the valid ranges"
    )


class ValidationErrorDetail(BaseModel):
    """422: the request body or query did not match the schema."""

    error: str = "ValidationError"
    message: str = "Request validation failed"
    details: list[dict] = Field(
        ...,
        description="One entry per invalid field: field, message, type"
    )
