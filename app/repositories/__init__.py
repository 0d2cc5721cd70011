"""Repository layer for the short-link service.

Repositories abstract database access for short links and click events;
together they are the durable store behind the services.
"""

from app.repositories.base import (
    BaseRepository,
    RepositoryError,
    EntityNotFoundError,
    DuplicateEntityError,
    OwnershipError,
)
from app.repositories.link_repository import ShortLinkRepository
from app.repositories.click_repository import ClickEventRepository

__all__ = [
    # Base classes and exceptions
    "BaseRepository",
    "RepositoryError",
    "EntityNotFoundError",
    "DuplicateEntityError",
    "OwnershipError",

    # Concrete repositories
    "ShortLinkRepository",
    "ClickEventRepository",
]
