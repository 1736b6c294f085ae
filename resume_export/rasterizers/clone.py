"""
DOM-clone rasterizer.

Clones the element off-screen and hands the clone to html2canvas, which
computes real layout (table borders, flex wrapping) at the cost of heavier
processing. The clone is a scoped resource: it is detached on every exit
path before control returns to the caller.
"""

from contextlib import asynccontextmanager

import structlog

from ..config import settings
from ..exceptions import RasterizationError
from ..models import RasterImage, RenderTarget
from ..styles import apply_style_patches
from .base import Rasterizer

logger = structlog.get_logger()

# Far outside the viewport, width pinned so text reflows identically
ATTACH_CLONE_SCRIPT = """
([id, width]) => {
    const original = document.getElementById(id);
    if (!original) return null;
    const clone = original.cloneNode(true);
    clone.setAttribute('data-export-clone', 'true');
    clone.style.position = 'absolute';
    clone.style.left = '-9999px';
    clone.style.top = '0';
    clone.style.width = `${width}px`;
    document.body.appendChild(clone);
    return clone;
}
"""

DETACH_CLONE_SCRIPT = "(el) => el.remove()"

ENGINE_PRESENT_SCRIPT = "() => typeof window.html2canvas === 'function'"

RENDER_CLONE_SCRIPT = """
async ([clone, width, height, scale]) => {
    const canvas = await window.html2canvas(clone, {
        scale: scale,
        width: width,
        height: height,
        useCORS: true,
        allowTaint: true,
        backgroundColor: '#ffffff',
        logging: false,
    });
    return {
        dataUrl: canvas.toDataURL('image/png'),
        canvasWidth: canvas.width,
        canvasHeight: canvas.height,
    };
}
"""


async def _detach(clone) -> None:
    await clone.evaluate(DETACH_CLONE_SCRIPT)
    await clone.dispose()


@asynccontextmanager
async def offscreen_clone(page, element_id: str, width: int):
    """
    Attach an off-screen deep clone of ``element_id`` and yield its handle.

    The clone is removed from the document when the block exits, whether it
    exits normally or by an exception. A failed detach after a failed render
    is logged so it cannot mask the render error.
    """
    handle = await page.evaluate_handle(ATTACH_CLONE_SCRIPT, [element_id, width])
    clone = handle.as_element()
    if clone is None:
        await handle.dispose()
        raise RasterizationError(
            f"Could not find element with ID '{element_id}'", stage="clone"
        )

    logger.debug("Attached off-screen clone", element_id=element_id, width=width)
    try:
        yield clone
    except BaseException:
        try:
            await _detach(clone)
        except Exception as detach_error:
            logger.error(
                "Failed to detach off-screen clone",
                element_id=element_id,
                error=str(detach_error),
            )
        raise
    else:
        try:
            await _detach(clone)
        except Exception as e:
            raise RasterizationError(
                f"Failed to detach off-screen clone: {e}", stage="detach"
            ) from e
    logger.debug("Detached off-screen clone", element_id=element_id)


class CloneRasterizer(Rasterizer):
    """Rasterizes an off-screen clone with html2canvas."""

    name = "clone"

    def __init__(self, page, engine_url: str | None = None):
        super().__init__(page)
        self.engine_url = engine_url or settings.html2canvas_url

    async def ensure_engine(self) -> None:
        """Inject html2canvas into the page unless it is already loaded."""
        if await self.page.evaluate(ENGINE_PRESENT_SCRIPT):
            return

        logger.info("Loading html2canvas", url=self.engine_url)
        try:
            await self.page.add_script_tag(url=self.engine_url)
        except Exception as e:
            raise RasterizationError(f"Could not load html2canvas: {e}", stage="engine") from e

        if not await self.page.evaluate(ENGINE_PRESENT_SCRIPT):
            raise RasterizationError("html2canvas is not available", stage="engine")

    async def render(self, target: RenderTarget) -> RasterImage:
        log = logger.bind(rasterizer=self.name, element_id=target.element_id)

        await self.ensure_engine()

        async with offscreen_clone(self.page, target.element_id, target.width) as clone:
            # The clone does not carry patches applied to another tree
            await apply_style_patches(self.page, clone)
            try:
                result = await self.page.evaluate(
                    RENDER_CLONE_SCRIPT,
                    [clone, target.width, target.height, self.scale],
                )
            except Exception as e:
                raise RasterizationError(f"html2canvas failed: {e}", stage="render") from e

        image = self._image_from_result(result, target)
        log.info("Rasterized element", width=image.pixel_width, height=image.pixel_height)
        return image
