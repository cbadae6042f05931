"""Shared response envelopes"""
from typing import Generic, List, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    items: List[T]
    count: int
    total: int
    page: int
    limit: int
    total_pages: int


class Message(BaseModel):
    message: str
