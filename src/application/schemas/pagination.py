"""Pagination helpers for watch-history and deleted-channel listings."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Generic, List, TypeVar

T = TypeVar("T")

DEFAULT_PAGE: int = 1
DEFAULT_SIZE: int = 20
MAX_SIZE: int = 100


@dataclass(frozen=True)
class PaginationParams:
    """1-based page request; ``size`` is clamped to [1, ``MAX_SIZE``]."""

    page: int = DEFAULT_PAGE
    size: int = DEFAULT_SIZE

    def __post_init__(self) -> None:
        object.__setattr__(self, "page", max(1, self.page))
        object.__setattr__(self, "size", max(1, min(self.size, MAX_SIZE)))

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.size


@dataclass
class PaginatedResponse(Generic[T]):
    items: List[T] = field(default_factory=list)
    total: int = 0
    page: int = DEFAULT_PAGE
    size: int = DEFAULT_SIZE

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.size) if self.total else 0

    @property
    def has_next(self) -> bool:
        return self.page < self.pages
