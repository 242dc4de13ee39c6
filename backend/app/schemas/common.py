"""Shared response envelope for the admin API."""

from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Every admin route returns its payload under ``data``."""

    data: T
