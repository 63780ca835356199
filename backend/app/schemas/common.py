"""Response envelope shared by dashboard routes."""

from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Dashboard payload wrapper; clients read `data` once `success` is true."""

    success: bool = True
    data: T
