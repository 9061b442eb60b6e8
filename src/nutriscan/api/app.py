"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import asdict
from datetime import date
from uuid import UUID

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from nutriscan.api.models import (
    BodyMetricsRequest,
    FavoriteToggleRequest,
    LogCreateRequest,
    LogUpdateRequest,
    TimezoneRequest,
    WaterRequest,
)
from nutriscan.app_logging import configure_logging
from nutriscan.containers import AppContainer
from nutriscan.domain.diary import DiaryView, DuplicateGroup, LogEntry, WaterEntry
from nutriscan.domain.errors import (
    EntryNotFoundError,
    NutriScanError,
    PersistenceError,
    ProviderError,
    ProviderUnavailableError,
    RetryableProviderError,
    ValidationError,
)
from nutriscan.domain.favorites import Favorite
from nutriscan.domain.products import ImageCapture, ProductRecord
from nutriscan.domain.profile import BodyMetrics
from nutriscan.services.diary import DiaryController

# Most specific first.
_ERROR_STATUS: tuple[tuple[type[NutriScanError], int], ...] = (
    (ValidationError, status.HTTP_422_UNPROCESSABLE_CONTENT),
    (EntryNotFoundError, status.HTTP_404_NOT_FOUND),
    (ProviderUnavailableError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (RetryableProviderError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (ProviderError, status.HTTP_502_BAD_GATEWAY),
    (PersistenceError, status.HTTP_500_INTERNAL_SERVER_ERROR),
)


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.exception_handler(NutriScanError)
    async def nutriscan_error_handler(
        request: Request, exc: NutriScanError
    ) -> JSONResponse:
        status_code = error_status(exc)
        if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
            logger.error(
                "%s %s failed: %s", request.method, request.url.path, exc
            )
        return JSONResponse(
            status_code=status_code,
            content={"error": type(exc).__name__, "message": exc.user_message},
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/users/{user_id}/products/barcode/{code}")
    async def lookup_barcode(
        user_id: UUID, code: str, request: Request
    ) -> dict[str, object]:
        """Look a barcode up; a miss asks the client for a label photo."""
        state_container: AppContainer = request.app.state.container
        product = await state_container.barcode_service.resolve(code)
        if product is None:
            logger.info("Barcode %s unknown for user %s", code, user_id)
            return {"found": False, "needs_image_capture": True}
        return {"found": True, "product": _product_json(product)}

    @app.post("/users/{user_id}/products/image")
    async def analyze_image(user_id: UUID, request: Request) -> dict[str, object]:
        """Analyze a raw label or package photo sent as the request body."""
        state_container: AppContainer = request.app.state.container
        image_bytes = await request.body()
        profile = state_container.profile_service.get_diet_profile(user_id)
        outcome = await state_container.resolver.resolve(
            ImageCapture(image_bytes=image_bytes), profile
        )
        return {"found": True, "product": _product_json(outcome.product)}

    @app.get("/users/{user_id}/diary")
    async def diary(
        user_id: UUID, request: Request, day: date | None = None
    ) -> dict[str, object]:
        """Return the aggregated diary for a day (today if omitted)."""
        state_container: AppContainer = request.app.state.container
        controller = DiaryController(state_container.diary_service, user_id)
        view = controller.select_date(day) if day else controller.refresh()
        return {
            "state": controller.state.value,
            "error": controller.error,
            **_diary_json(view),
        }

    @app.post("/users/{user_id}/logs", status_code=status.HTTP_201_CREATED)
    async def create_log(
        user_id: UUID, payload: LogCreateRequest, request: Request
    ) -> dict[str, object]:
        """Save a resolved product as a diary entry."""
        state_container: AppContainer = request.app.state.container
        entry = await state_container.entry_service.save_new(
            user_id,
            payload.product,
            portions=payload.portions,
            notes=payload.notes,
            image_uri=payload.image_uri,
        )
        return _entry_json(entry)

    @app.put("/users/{user_id}/logs/{entry_id}")
    async def update_log(
        user_id: UUID, entry_id: UUID, payload: LogUpdateRequest, request: Request
    ) -> dict[str, object]:
        """Edit portions, notes or name of an entry."""
        state_container: AppContainer = request.app.state.container
        entry = state_container.entry_service.edit_and_save(
            user_id,
            entry_id,
            portions=payload.portions,
            notes=payload.notes,
            product_name=payload.product_name,
        )
        return _entry_json(entry)

    @app.delete("/users/{user_id}/logs/{entry_id}")
    async def delete_log(
        user_id: UUID, entry_id: UUID, request: Request
    ) -> dict[str, object]:
        """Delete an entry; it stays restorable for the undo window."""
        state_container: AppContainer = request.app.state.container
        pending = state_container.entry_service.delete_entry(user_id, entry_id)
        return {
            "deleted": str(entry_id),
            "undo_expires_at": pending.expires_at.isoformat(),
        }

    @app.post("/users/{user_id}/logs/undo")
    async def undo_delete(user_id: UUID, request: Request) -> dict[str, object]:
        """Restore the most recently deleted entry if the window is open."""
        state_container: AppContainer = request.app.state.container
        restored = state_container.entry_service.undo(user_id)
        if restored is None:
            return {"restored": False}
        return {"restored": True, "entry": _entry_json(restored)}

    @app.post("/users/{user_id}/water", status_code=status.HTTP_201_CREATED)
    async def add_water(
        user_id: UUID, payload: WaterRequest, request: Request
    ) -> dict[str, object]:
        """Log water intake in liters."""
        state_container: AppContainer = request.app.state.container
        entry = state_container.entry_service.add_water(user_id, payload.amount)
        return _water_json(entry)

    @app.put("/users/{user_id}/profile/metrics")
    async def update_metrics(
        user_id: UUID, payload: BodyMetricsRequest, request: Request
    ) -> dict[str, object]:
        """Recalculate and store daily targets from body metrics."""
        state_container: AppContainer = request.app.state.container
        limits = state_container.profile_service.save_body_metrics(
            user_id, BodyMetrics(**payload.model_dump())
        )
        return {"limits": asdict(limits)}

    @app.put("/users/{user_id}/profile/timezone")
    async def update_timezone(
        user_id: UUID, payload: TimezoneRequest, request: Request
    ) -> dict[str, str]:
        """Store the timezone that defines the user's diary days."""
        state_container: AppContainer = request.app.state.container
        state_container.profile_service.set_timezone(user_id, payload.timezone)
        return {"timezone": payload.timezone}

    @app.get("/users/{user_id}/favorites")
    async def list_favorites(user_id: UUID, request: Request) -> dict[str, object]:
        """List the user's starred products, newest first."""
        state_container: AppContainer = request.app.state.container
        favorites = state_container.favorites_service.list_favorites(user_id)
        return {"favorites": [_favorite_json(favorite) for favorite in favorites]}

    @app.get("/users/{user_id}/favorites/status")
    async def favorite_status(
        user_id: UUID, product_name: str, request: Request
    ) -> dict[str, bool]:
        """Report whether a product is starred."""
        state_container: AppContainer = request.app.state.container
        return {
            "is_favorite": state_container.favorites_service.is_favorite(
                user_id, product_name
            )
        }

    @app.post("/users/{user_id}/favorites/toggle")
    async def toggle_favorite(
        user_id: UUID, payload: FavoriteToggleRequest, request: Request
    ) -> dict[str, bool]:
        """Star or unstar a product."""
        state_container: AppContainer = request.app.state.container
        return {
            "is_favorite": state_container.favorites_service.toggle(
                user_id, payload.product
            )
        }

    return app


def error_status(exc: NutriScanError) -> int:
    """Return the HTTP status for an application error."""
    for error_type, status_code in _ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def _product_json(product: ProductRecord | None) -> dict[str, object] | None:
    if product is None:
        return None
    return product.model_dump(mode="json", by_alias=True)


def _entry_json(entry: LogEntry) -> dict[str, object]:
    return {
        "id": str(entry.id),
        "timestamp": entry.timestamp,
        "portions": entry.portions,
        "notes": entry.notes,
        "image_uri": entry.image_uri,
        "product": _product_json(entry.product),
    }


def _favorite_json(favorite: Favorite) -> dict[str, object]:
    return {
        "product_name": favorite.product_name,
        "calories": favorite.calories,
        "protein": favorite.protein,
        "created_at": favorite.created_at.isoformat(),
    }


def _water_json(entry: WaterEntry) -> dict[str, object]:
    return {"id": str(entry.id), "amount": entry.amount, "timestamp": entry.timestamp}


def _group_json(group: DuplicateGroup) -> dict[str, object]:
    return {
        "entry": _entry_json(group.entry),
        "count": group.count,
        "total_calories": group.total_calories,
        "ids": [str(entry_id) for entry_id in group.ids],
        "delete_target": str(group.delete_target),
    }


def _diary_json(view: DiaryView) -> dict[str, object]:
    return {
        "day": view.day.isoformat(),
        "meals": {
            bucket.value: {
                "calories": view.bucket_calories[bucket],
                "groups": [_group_json(group) for group in groups],
            }
            for bucket, groups in view.groups.items()
        },
        "summary": asdict(view.summary),
        "limits": asdict(view.limits),
        "insight": asdict(view.insight) if view.insight else None,
        "water_progress": view.water_progress,
    }
