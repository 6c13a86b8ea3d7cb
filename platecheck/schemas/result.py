# platecheck/schemas/result.py
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel

from platecheck.exceptions import PlateCheckError

T = TypeVar("T")


class OperationResult(BaseModel, Generic[T]):
    """Outcome of a mutating operation. On failure `data` is None and `code` names the error."""

    success: bool
    data: Optional[T] = None
    error: Optional[str] = None
    code: Optional[str] = None

    @classmethod
    def ok(cls, data=None):
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, exc: PlateCheckError):
        return cls(success=False, error=exc.message, code=exc.code)
