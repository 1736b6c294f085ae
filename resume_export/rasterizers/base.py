"""
Base rasterizer interface.
"""

from abc import ABC, abstractmethod

import structlog

from ..exceptions import RasterizationError
from ..models import OVERSAMPLING, RasterImage, RenderTarget

logger = structlog.get_logger()

MEASURE_SCRIPT = """
(id) => {
    const el = document.getElementById(id);
    if (!el) return null;
    return {width: el.offsetWidth, height: el.offsetHeight};
}
"""


async def measure_target(page, element_id: str) -> RenderTarget:
    """
    Read the element's box size before anything can change its layout context.

    Raises:
        RasterizationError: If the element is missing or has no size
    """
    box = await page.evaluate(MEASURE_SCRIPT, element_id)
    if box is None:
        raise RasterizationError(
            f"Could not find element with ID '{element_id}'", stage="locate"
        )
    if box["width"] <= 0 or box["height"] <= 0:
        raise RasterizationError(
            f"Element '{element_id}' has no size ({box['width']}x{box['height']})",
            stage="measure",
        )
    return RenderTarget(element_id=element_id, width=box["width"], height=box["height"])


class Rasterizer(ABC):
    """
    Turns a laid-out element of a live page into a RasterImage.

    Implementations share one success/failure shape: they return a
    RasterImage at ``OVERSAMPLING`` x the target size or raise
    RasterizationError naming the failing stage.
    """

    name = "base"
    scale = OVERSAMPLING

    def __init__(self, page):
        """
        Args:
            page: Playwright page holding the document to export
        """
        self.page = page

    @abstractmethod
    async def render(self, target: RenderTarget) -> RasterImage:
        """Rasterize ``target`` into a PNG at the oversampling factor."""

    def _image_from_result(self, result: dict, target: RenderTarget) -> RasterImage:
        """Convert the page-side result dict into a RasterImage."""
        if result.get("error"):
            raise RasterizationError(result.get("message") or "unknown error", stage=result["error"])

        logger.debug(
            "Canvas rasterized",
            rasterizer=self.name,
            canvas_width=result.get("canvasWidth"),
            canvas_height=result.get("canvasHeight"),
        )
        return RasterImage.from_data_uri(result.get("dataUrl"), target)
