"""Supabase repository for food log entries."""

from dataclasses import dataclass
from uuid import UUID

from supabase import Client

from nutriscan.adapters.supabase_query import execute
from nutriscan.domain.diary import LogDraft, LogEntry, NutrientSnapshot
from nutriscan.domain.errors import PersistenceError
from nutriscan.domain.products import ProductRecord, coerce_optional_float
from nutriscan.services.entries import FoodLogRepository

_COLUMNS = (
    "id, user_id, timestamp, product_name, calories, protein, carbohydrates, "
    "total_fat, portions, notes, image_uri, product, base_nutrients"
)


@dataclass
class SupabaseFoodLogRepository(FoodLogRepository):
    """Supabase implementation for food logs."""

    client: Client

    def list_food_logs(self, user_id: UUID) -> list[LogEntry]:
        """Return all entries of the user in insertion order."""
        response = execute(
            self.client.table("food_logs")
            .select(_COLUMNS)
            .eq("user_id", str(user_id))
            .order("created_at", desc=False),
            action="list food logs",
        )
        return [_parse_row(row) for row in response.data or []]

    def get_food_log(self, user_id: UUID, entry_id: UUID) -> LogEntry | None:
        """Return one entry of the user by id."""
        response = execute(
            self.client.table("food_logs")
            .select(_COLUMNS)
            .eq("user_id", str(user_id))
            .eq("id", str(entry_id))
            .limit(1),
            action="get food log",
        )
        if not response.data:
            return None
        return _parse_row(response.data[0])

    def create_food_log(self, user_id: UUID, draft: LogDraft) -> LogEntry:
        """Insert an entry row and return it with the generated id."""
        response = execute(
            self.client.table("food_logs").insert(
                {"user_id": str(user_id), **_row_fields(draft)}
            ),
            action="create food log",
        )
        if not response.data:
            raise PersistenceError("Failed to create food log")
        return _parse_row(response.data[0])

    def replace_food_log(self, entry: LogEntry) -> None:
        """Overwrite every stored field of an entry."""
        execute(
            self.client.table("food_logs")
            .update(_row_fields(entry))
            .eq("id", str(entry.id))
            .eq("user_id", str(entry.user_id)),
            action="update food log",
        )

    def delete_food_log(self, user_id: UUID, entry_id: UUID) -> None:
        """Delete an entry row."""
        execute(
            self.client.table("food_logs")
            .delete()
            .eq("id", str(entry_id))
            .eq("user_id", str(user_id)),
            action="delete food log",
        )


def _row_fields(entry: LogDraft | LogEntry) -> dict[str, object]:
    product = entry.product
    return {
        "timestamp": entry.timestamp,
        "product_name": product.product_name,
        "calories": product.calories,
        "protein": product.protein,
        "carbohydrates": product.carbohydrates,
        "total_fat": product.total_fat,
        "portions": entry.portions,
        "notes": entry.notes,
        "image_uri": entry.image_uri,
        "product": product.model_dump(mode="json"),
        "base_nutrients": {
            "calories": entry.base.calories,
            "protein": entry.base.protein,
            "carbohydrates": entry.base.carbohydrates,
            "total_fat": entry.base.total_fat,
        },
    }


def _parse_row(row: dict[str, object]) -> LogEntry:
    stored = row.get("product")
    product = ProductRecord.model_validate(
        {
            **(stored if isinstance(stored, dict) else {}),
            "product_name": row.get("product_name") or "",
            "calories": row.get("calories"),
            "protein": row.get("protein"),
            "carbohydrates": row.get("carbohydrates"),
            "total_fat": row.get("total_fat"),
        }
    )
    base = row.get("base_nutrients")
    if isinstance(base, dict):
        snapshot = NutrientSnapshot(
            calories=coerce_optional_float(base.get("calories")),
            protein=coerce_optional_float(base.get("protein")),
            carbohydrates=coerce_optional_float(base.get("carbohydrates")),
            total_fat=coerce_optional_float(base.get("total_fat")),
        )
    else:
        snapshot = NutrientSnapshot.from_product(product)
    portions = coerce_optional_float(row.get("portions"))
    return LogEntry(
        id=UUID(str(row["id"])),
        user_id=UUID(str(row["user_id"])),
        timestamp=int(row.get("timestamp") or 0),
        product=product,
        base=snapshot,
        portions=portions if portions else 1.0,
        notes=str(row.get("notes") or ""),
        image_uri=row.get("image_uri") or None,
    )
