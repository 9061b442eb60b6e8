"""Shared test fixtures."""

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from uuid import UUID, uuid4

import pytest

from nutriscan.adapters.openfoodfacts_client import OpenFoodFactsClient
from nutriscan.config import Settings
from nutriscan.containers import AppContainer
from nutriscan.domain.diary import LogDraft, LogEntry, WaterEntry
from nutriscan.domain.errors import PersistenceError
from nutriscan.domain.favorites import Favorite
from nutriscan.domain.products import ProductRecord, ProductType
from nutriscan.domain.profile import UserSettings
from nutriscan.services.achievements import (
    AchievementEventNotifier,
    AchievementEventRepository,
    AchievementNotifier,
)
from nutriscan.services.barcode import BarcodeProductService
from nutriscan.services.cache import InMemoryCache
from nutriscan.services.diary import DiaryService
from nutriscan.services.entries import (
    EntryService,
    FoodLogRepository,
    UndoBuffer,
    WaterLogRepository,
)
from nutriscan.services.favorites import FavoriteRepository, FavoritesService
from nutriscan.services.profile import ProfileRepository, ProfileService
from nutriscan.services.resolver import ProductResolver
from nutriscan.services.vision import VisionClient, VisionService

VISION_REPLY = (
    "Here is the analysis:\n"
    '{"productType": "Food", "productName": "Masala Oats", '
    '"vegetarianStatus": "vegetarian", "healthScore": 64, '
    '"healthInsight": "Good fibre, watch the salt.", '
    '"calories": 190, "protein": 5.5, "carbohydrates": 31, "totalFat": null, '
    '"sugar": {"labelSugar": 2.1, "hiddenSugars": ["maltodextrin"]}, '
    '"allergens": ["oats"], "preservatives": ["E211"]}\n'
    "Let me know if you need more."
)


@dataclass
class FakeClock:
    """Controllable clock returning aware UTC datetimes."""

    now: datetime = field(
        default_factory=lambda: datetime(2024, 5, 10, 12, tzinfo=UTC)
    )

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


@dataclass
class FakeOpenFoodFactsClient(OpenFoodFactsClient):
    """Fake Open Food Facts client returning queued payloads or errors."""

    payloads: dict[str, dict[str, object]] = field(default_factory=dict)
    errors: list[Exception] = field(default_factory=list)
    calls: list[str] = field(default_factory=list)

    async def get_product(self, barcode: str) -> dict[str, object]:
        self.calls.append(barcode)
        if self.errors:
            raise self.errors.pop(0)
        return self.payloads.get(barcode, {"status": 0, "code": barcode})


@dataclass
class FakeVisionClient(VisionClient):
    """Fake vision client returning a fixed reply after queued errors."""

    reply: str = VISION_REPLY
    errors: list[Exception] = field(default_factory=list)
    prompts: list[str] = field(default_factory=list)

    async def analyze(  # noqa: PLR0913
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        image_data_url: str,
        prompt: str,
        timeout_seconds: float,
    ) -> str:
        self.prompts.append(prompt)
        if self.errors:
            raise self.errors.pop(0)
        return self.reply


@dataclass
class InMemoryFoodLogRepository(FoodLogRepository):
    """In-memory food log repository keeping insertion order."""

    entries: dict[UUID, LogEntry] = field(default_factory=dict)
    fail_reads: bool = False

    def list_food_logs(self, user_id: UUID) -> list[LogEntry]:
        if self.fail_reads:
            raise PersistenceError("list food logs failed: offline")
        return [entry for entry in self.entries.values() if entry.user_id == user_id]

    def get_food_log(self, user_id: UUID, entry_id: UUID) -> LogEntry | None:
        entry = self.entries.get(entry_id)
        if entry is None or entry.user_id != user_id:
            return None
        return entry

    def create_food_log(self, user_id: UUID, draft: LogDraft) -> LogEntry:
        entry = LogEntry(
            id=uuid4(),
            user_id=user_id,
            timestamp=draft.timestamp,
            product=draft.product,
            base=draft.base,
            portions=draft.portions,
            notes=draft.notes,
            image_uri=draft.image_uri,
        )
        self.entries[entry.id] = entry
        return entry

    def replace_food_log(self, entry: LogEntry) -> None:
        self.entries[entry.id] = entry

    def delete_food_log(self, user_id: UUID, entry_id: UUID) -> None:
        self.entries.pop(entry_id, None)


@dataclass
class InMemoryWaterLogRepository(WaterLogRepository):
    """In-memory water log repository."""

    entries: list[WaterEntry] = field(default_factory=list)

    def list_water_logs(self, user_id: UUID) -> list[WaterEntry]:
        return [entry for entry in self.entries if entry.user_id == user_id]

    def create_water_log(
        self, user_id: UUID, amount: float, timestamp: int
    ) -> WaterEntry:
        entry = WaterEntry(
            id=uuid4(), user_id=user_id, amount=amount, timestamp=timestamp
        )
        self.entries.append(entry)
        return entry


@dataclass
class InMemoryProfileRepository(ProfileRepository):
    """In-memory user settings repository."""

    documents: dict[UUID, dict[str, object]] = field(default_factory=dict)

    def get_settings(self, user_id: UUID) -> UserSettings | None:
        document = self.documents.get(user_id)
        if document is None:
            return None
        return UserSettings(
            diet=document.get("diet"),
            goal=document.get("goal"),
            timezone=document.get("timezone"),
            calculated_limits=document.get("calculated_limits") or {},
        )

    def update_settings(self, user_id: UUID, payload: dict[str, object]) -> None:
        self.documents.setdefault(user_id, {}).update(payload)


@dataclass
class InMemoryAchievementRepository(AchievementEventRepository):
    """In-memory achievement event store."""

    events: list[dict[str, object]] = field(default_factory=list)

    def create_event(
        self, user_id: UUID, event_type: str, payload: dict[str, object]
    ) -> None:
        self.events.append(
            {"user_id": user_id, "event_type": event_type, "payload": payload}
        )


@dataclass
class InMemoryFavoriteRepository(FavoriteRepository):
    """In-memory favorites keyed by user and product key."""

    favorites: dict[tuple[UUID, str], Favorite] = field(default_factory=dict)

    def get_favorite(self, user_id: UUID, product_key: str) -> Favorite | None:
        return self.favorites.get((user_id, product_key))

    def list_favorites(self, user_id: UUID) -> list[Favorite]:
        items = [
            favorite
            for (owner, _key), favorite in self.favorites.items()
            if owner == user_id
        ]
        return sorted(items, key=lambda favorite: favorite.created_at, reverse=True)

    def add_favorite(self, user_id: UUID, favorite: Favorite) -> None:
        self.favorites[(user_id, favorite.product_key)] = favorite

    def delete_favorite(self, user_id: UUID, product_key: str) -> None:
        self.favorites.pop((user_id, product_key), None)


@dataclass
class FailingAchievementNotifier(AchievementNotifier):
    """Notifier whose collaborator is down."""

    calls: int = 0

    async def entry_logged(self, user_id: UUID, entry: LogEntry) -> None:
        self.calls += 1
        raise RuntimeError("achievement service unavailable")


def make_product(
    name: str = "Greek Yogurt",
    calories: float | None = 120,
    protein: float | None = 10,
    carbohydrates: float | None = 8,
    total_fat: float | None = 4,
    product_type: ProductType = ProductType.FOOD,
) -> ProductRecord:
    return ProductRecord(
        product_type=product_type,
        product_name=name,
        calories=calories,
        protein=protein,
        carbohydrates=carbohydrates,
        total_fat=total_fat,
    )


def off_payload(**product: object) -> dict[str, object]:
    return {"status": 1, "product": product}


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="service-key",
        openai_api_key="openai-key",
    )


@pytest.fixture
def user_id() -> UUID:
    return uuid4()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def food_logs() -> InMemoryFoodLogRepository:
    return InMemoryFoodLogRepository()


@pytest.fixture
def water_logs() -> InMemoryWaterLogRepository:
    return InMemoryWaterLogRepository()


@pytest.fixture
def profile_repository() -> InMemoryProfileRepository:
    return InMemoryProfileRepository()


@pytest.fixture
def achievement_repository() -> InMemoryAchievementRepository:
    return InMemoryAchievementRepository()


@pytest.fixture
def off_client() -> FakeOpenFoodFactsClient:
    return FakeOpenFoodFactsClient()


@pytest.fixture
def vision_client() -> FakeVisionClient:
    return FakeVisionClient()


@pytest.fixture
def entry_service(
    food_logs: InMemoryFoodLogRepository,
    water_logs: InMemoryWaterLogRepository,
    achievement_repository: InMemoryAchievementRepository,
    clock: FakeClock,
) -> EntryService:
    return EntryService(
        food_logs=food_logs,
        water_logs=water_logs,
        achievements=AchievementEventNotifier(achievement_repository),
        undo_buffer=UndoBuffer(window_seconds=4.0, clock=clock),
        clock=clock,
    )


@pytest.fixture
def diary_service(
    food_logs: InMemoryFoodLogRepository,
    water_logs: InMemoryWaterLogRepository,
    profile_repository: InMemoryProfileRepository,
    clock: FakeClock,
) -> DiaryService:
    return DiaryService(
        food_logs=food_logs,
        water_logs=water_logs,
        profile_service=ProfileService(profile_repository),
        clock=clock,
    )


@pytest.fixture
def favorite_repository() -> InMemoryFavoriteRepository:
    return InMemoryFavoriteRepository()


@pytest.fixture
def favorites_service(
    favorite_repository: InMemoryFavoriteRepository, clock: FakeClock
) -> FavoritesService:
    return FavoritesService(repository=favorite_repository, clock=clock)


@pytest.fixture
def container(  # noqa: PLR0913
    settings: Settings,
    off_client: FakeOpenFoodFactsClient,
    vision_client: FakeVisionClient,
    profile_repository: InMemoryProfileRepository,
    entry_service: EntryService,
    diary_service: DiaryService,
    favorites_service: FavoritesService,
) -> AppContainer:
    barcode_service = BarcodeProductService(
        client=off_client, cache=InMemoryCache(), retry_delay_seconds=0
    )
    vision_service = VisionService(
        client=vision_client,
        model=settings.openai_model,
        reasoning_effort=settings.openai_reasoning_effort,
        store=settings.openai_store,
        retry_delay_seconds=0,
    )

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        barcode_service=barcode_service,
        vision_service=vision_service,
        resolver=ProductResolver(barcode_service, vision_service),
        profile_service=ProfileService(profile_repository),
        entry_service=entry_service,
        diary_service=diary_service,
        favorites_service=favorites_service,
        close_resources=close_resources,
    )
