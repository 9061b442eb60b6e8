"""Services for starring scanned products."""

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol
from uuid import UUID

from nutriscan.domain.errors import ValidationError
from nutriscan.domain.favorites import Favorite
from nutriscan.domain.products import ProductRecord

_KEY_UNSAFE = re.compile(r"[.#$\[\]]")

_logger = logging.getLogger(__name__)


class FavoriteRepository(Protocol):
    """Persistence interface for favorites, keyed by user and product key."""

    def get_favorite(self, user_id: UUID, product_key: str) -> Favorite | None:
        """Return the favorite stored under ``product_key``, if any."""

    def list_favorites(self, user_id: UUID) -> list[Favorite]:
        """Return the user's favorites, newest first."""

    def add_favorite(self, user_id: UUID, favorite: Favorite) -> None:
        """Store a favorite, replacing one with the same key."""

    def delete_favorite(self, user_id: UUID, product_key: str) -> None:
        """Remove the favorite stored under ``product_key``."""


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class FavoritesService:
    """Application service for the per-user favorites list."""

    repository: FavoriteRepository
    clock: Callable[[], datetime] = _utcnow

    def is_favorite(self, user_id: UUID, product_name: str) -> bool:
        """Return True when the product is starred."""
        key = favorite_key(product_name)
        return self.repository.get_favorite(user_id, key) is not None

    def toggle(self, user_id: UUID, product: ProductRecord) -> bool:
        """Star or unstar ``product`` and return the new state."""
        key = favorite_key(product.product_name)
        if self.repository.get_favorite(user_id, key) is not None:
            self.repository.delete_favorite(user_id, key)
            _logger.info("Removed favorite %s for user %s", key, user_id)
            return False
        self.repository.add_favorite(
            user_id,
            Favorite(
                product_key=key,
                product_name=product.product_name,
                calories=product.calories,
                protein=product.protein,
                created_at=self.clock(),
            ),
        )
        _logger.info("Added favorite %s for user %s", key, user_id)
        return True

    def list_favorites(self, user_id: UUID) -> list[Favorite]:
        """Return the user's favorites, newest first."""
        return self.repository.list_favorites(user_id)


def favorite_key(product_name: str) -> str:
    """Derive the storage key for a product name.

    Characters ``. # $ [ ]`` are dropped, so names differing only in those
    characters share one favorite.
    """
    key = _KEY_UNSAFE.sub("", product_name or "").strip()
    if not key:
        raise ValidationError("Product name is required.")
    return key
