"""Provider chain: barcode lookup first, photo analysis as fallback."""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from nutriscan.domain.products import (
    BarcodeCapture,
    Capture,
    DietProfile,
    ImageCapture,
    ProductRecord,
)
from nutriscan.services.barcode import BarcodeProductService
from nutriscan.services.vision import VisionService

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolveOutcome:
    """Result of resolving one capture."""

    product: ProductRecord | None
    needs_image_capture: bool = False


@dataclass
class ProductResolver:
    """Route captures to the matching provider."""

    barcode_service: BarcodeProductService
    vision_service: VisionService

    async def resolve(
        self, capture: Capture, profile: DietProfile | None = None
    ) -> ResolveOutcome:
        """Resolve a single capture without falling back.

        A barcode miss is reported through ``needs_image_capture`` so the
        caller can switch the scanner to photo mode.
        """
        if isinstance(capture, BarcodeCapture):
            _logger.info(
                "Resolving barcode %s (type: %s)", capture.code, capture.symbology
            )
            product = await self.barcode_service.resolve(capture.code)
            return ResolveOutcome(
                product=product, needs_image_capture=product is None
            )
        if isinstance(capture, ImageCapture):
            product = await self.vision_service.analyze(capture.image_bytes, profile)
            return ResolveOutcome(product=product)
        raise TypeError(f"Unsupported capture: {type(capture).__name__}")

    async def resolve_with_fallback(
        self,
        barcode: str,
        capture_image: Callable[[], Awaitable[bytes]],
        profile: DietProfile | None = None,
    ) -> ProductRecord:
        """Look up ``barcode``; on a miss, photograph the label and analyze it."""
        outcome = await self.resolve(BarcodeCapture(code=barcode), profile)
        if outcome.product is not None:
            return outcome.product
        _logger.info("Barcode %s unknown, falling back to image analysis", barcode)
        image_bytes = await capture_image()
        return await self.vision_service.analyze(image_bytes, profile)
