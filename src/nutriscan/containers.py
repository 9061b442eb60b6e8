"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from nutriscan.adapters.openai_vision_client import OpenAIVisionClient
from nutriscan.adapters.openfoodfacts_client import HttpxOpenFoodFactsClient
from nutriscan.adapters.supabase_favorite_repository import (
    SupabaseFavoriteRepository,
)
from nutriscan.adapters.supabase_achievement_repository import (
    SupabaseAchievementRepository,
)
from nutriscan.adapters.supabase_food_log_repository import (
    SupabaseFoodLogRepository,
)
from nutriscan.adapters.supabase_profile_repository import SupabaseProfileRepository
from nutriscan.adapters.supabase_water_log_repository import (
    SupabaseWaterLogRepository,
)
from nutriscan.config import Settings
from nutriscan.services.achievements import AchievementEventNotifier
from nutriscan.services.barcode import BarcodeProductService
from nutriscan.services.cache import InMemoryCache
from nutriscan.services.diary import DiaryService
from nutriscan.services.entries import EntryService, UndoBuffer
from nutriscan.services.favorites import FavoritesService
from nutriscan.services.profile import ProfileService
from nutriscan.services.resolver import ProductResolver
from nutriscan.services.vision import VisionService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    barcode_service: BarcodeProductService
    vision_service: VisionService
    resolver: ProductResolver
    profile_service: ProfileService
    entry_service: EntryService
    diary_service: DiaryService
    favorites_service: FavoritesService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    food_log_repository = SupabaseFoodLogRepository(supabase_client)
    water_log_repository = SupabaseWaterLogRepository(supabase_client)
    profile_repository = SupabaseProfileRepository(supabase_client)
    achievement_repository = SupabaseAchievementRepository(supabase_client)

    off_client = HttpxOpenFoodFactsClient.create(
        base_url=resolved_settings.off_base_url,
        timeout_seconds=resolved_settings.barcode_timeout_seconds,
    )
    barcode_service = BarcodeProductService(
        client=off_client,
        cache=InMemoryCache(),
        retry_attempts=resolved_settings.barcode_retry_attempts,
        retry_delay_seconds=resolved_settings.retry_base_delay_seconds,
        cache_ttl_seconds=resolved_settings.barcode_cache_ttl_seconds,
    )
    openai_client = OpenAIVisionClient.create(resolved_settings.openai_api_key)
    vision_service = VisionService(
        client=openai_client,
        model=resolved_settings.openai_model,
        reasoning_effort=resolved_settings.openai_reasoning_effort,
        store=resolved_settings.openai_store,
        timeout_seconds=resolved_settings.vision_timeout_seconds,
        retry_attempts=resolved_settings.vision_retry_attempts,
        retry_delay_seconds=resolved_settings.retry_base_delay_seconds,
    )
    profile_service = ProfileService(profile_repository)
    entry_service = EntryService(
        food_logs=food_log_repository,
        water_logs=water_log_repository,
        achievements=AchievementEventNotifier(achievement_repository),
        undo_buffer=UndoBuffer(window_seconds=resolved_settings.undo_window_seconds),
    )
    diary_service = DiaryService(
        food_logs=food_log_repository,
        water_logs=water_log_repository,
        profile_service=profile_service,
    )

    async def close_resources() -> None:
        await off_client.close()
        await openai_client.close()

    return AppContainer(
        settings=resolved_settings,
        barcode_service=barcode_service,
        vision_service=vision_service,
        resolver=ProductResolver(barcode_service, vision_service),
        profile_service=profile_service,
        entry_service=entry_service,
        diary_service=diary_service,
        favorites_service=FavoritesService(
            SupabaseFavoriteRepository(supabase_client)
        ),
        close_resources=close_resources,
    )
