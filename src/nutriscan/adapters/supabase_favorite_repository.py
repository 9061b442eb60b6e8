"""Supabase repository for favorite products."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from supabase import Client

from nutriscan.adapters.supabase_query import execute
from nutriscan.domain.favorites import Favorite
from nutriscan.domain.products import coerce_optional_float
from nutriscan.services.favorites import FavoriteRepository

_COLUMNS = "product_key, product_name, calories, protein, created_at"


@dataclass
class SupabaseFavoriteRepository(FavoriteRepository):
    """Supabase-backed favorites, unique on ``(user_id, product_key)``."""

    client: Client

    def get_favorite(self, user_id: UUID, product_key: str) -> Favorite | None:
        """Return the favorite stored under ``product_key``, if any."""
        response = execute(
            self.client.table("favorites")
            .select(_COLUMNS)
            .eq("user_id", str(user_id))
            .eq("product_key", product_key)
            .limit(1),
            action="get favorite",
        )
        if not response.data:
            return None
        return _parse_favorite(response.data[0])

    def list_favorites(self, user_id: UUID) -> list[Favorite]:
        """Return the user's favorites, newest first."""
        response = execute(
            self.client.table("favorites")
            .select(_COLUMNS)
            .eq("user_id", str(user_id))
            .order("created_at", desc=True),
            action="list favorites",
        )
        return [_parse_favorite(row) for row in response.data or []]

    def add_favorite(self, user_id: UUID, favorite: Favorite) -> None:
        """Upsert a favorite row."""
        execute(
            self.client.table("favorites").upsert(
                {
                    "user_id": str(user_id),
                    "product_key": favorite.product_key,
                    "product_name": favorite.product_name,
                    "calories": favorite.calories,
                    "protein": favorite.protein,
                    "created_at": favorite.created_at.isoformat(),
                },
                on_conflict="user_id,product_key",
            ),
            action="add favorite",
        )

    def delete_favorite(self, user_id: UUID, product_key: str) -> None:
        """Delete a favorite row."""
        execute(
            self.client.table("favorites")
            .delete()
            .eq("user_id", str(user_id))
            .eq("product_key", product_key),
            action="delete favorite",
        )


def _parse_favorite(row: dict[str, object]) -> Favorite:
    """Parse a favorites row into a domain model."""
    return Favorite(
        product_key=str(row["product_key"]),
        product_name=str(row.get("product_name") or row["product_key"]),
        calories=coerce_optional_float(row.get("calories")),
        protein=coerce_optional_float(row.get("protein")),
        created_at=datetime.fromisoformat(str(row["created_at"])),
    )
