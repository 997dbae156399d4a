"""Shared response schemas."""

from pydantic import BaseModel


class FieldErrorResponse(BaseModel):
    field: str
    message: str


class ErrorResponse(BaseModel):
    success: bool = False
    message: str
    errors: list[FieldErrorResponse] | None = None


class MessageResponse(BaseModel):
    success: bool = True
    message: str
