from typing import Generic, Optional, TypeVar

from pydantic import BaseModel

T = TypeVar("T")

# Largest value an INTEGER primary key holds on both SQLite and PostgreSQL
MAX_RECORD_ID = 2**31 - 1


class Envelope(BaseModel, Generic[T]):
    """Uniform response body for every endpoint."""
    success: bool = True
    message: str = "OK"
    data: Optional[T] = None


class ErrorEnvelope(BaseModel):
    success: bool = False
    error: str
    message: str
