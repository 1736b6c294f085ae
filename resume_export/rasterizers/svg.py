"""
Canvas/SVG rasterizer.

Lets the browser's own SVG renderer lay out the element by wrapping its
serialized markup in an SVG ``foreignObject``, then draws the decoded image
onto a 2x canvas. No third-party layout engine is involved.

SVG images never run scripts or fetch the page's stylesheets, which is why
the markup goes through the style patch layer first.
"""

import structlog

from ..documents import render_foreign_object_svg
from ..exceptions import RasterizationError
from ..models import RasterImage, RenderTarget
from ..styles import PATCH_ELEMENT_SCRIPT, STYLE_PATCHES
from .base import Rasterizer

logger = structlog.get_logger()

# Patches a detached copy so the live element is left alone. XMLSerializer
# yields XHTML, which keeps the SVG well-formed XML.
SERIALIZE_SCRIPT = f"""
([id, patches]) => {{
    const el = document.getElementById(id);
    if (!el) return null;
    const copy = el.cloneNode(true);
    ({PATCH_ELEMENT_SCRIPT.strip()})([copy, patches]);
    return new XMLSerializer().serializeToString(copy);
}}
"""

# The object URL is revoked on every path
RASTERIZE_SVG_SCRIPT = """
async ({svg, width, height, scale}) => {
    const canvas = document.createElement('canvas');
    canvas.width = width * scale;
    canvas.height = height * scale;
    const ctx = canvas.getContext('2d');
    if (!ctx) {
        return {error: 'canvas', message: 'Could not get canvas context'};
    }

    // PDFs default to transparent; keep it from leaking through
    ctx.fillStyle = '#FFFFFF';
    ctx.fillRect(0, 0, canvas.width, canvas.height);
    ctx.scale(scale, scale);

    const blob = new Blob([svg], {type: 'image/svg+xml;charset=utf-8'});
    const url = URL.createObjectURL(blob);
    try {
        const img = new Image();
        await new Promise((resolve, reject) => {
            img.onload = resolve;
            img.onerror = () => reject(new Error('Failed to load SVG image'));
            img.src = url;
        });
        ctx.drawImage(img, 0, 0, width, height);
    } catch (e) {
        return {error: 'decode', message: String((e && e.message) || e)};
    } finally {
        URL.revokeObjectURL(url);
    }

    try {
        return {
            dataUrl: canvas.toDataURL('image/png'),
            canvasWidth: canvas.width,
            canvasHeight: canvas.height,
        };
    } catch (e) {
        return {error: 'encode', message: String((e && e.message) || e)};
    }
}
"""


class SvgRasterizer(Rasterizer):
    """Rasterizes through an SVG foreignObject drawn onto a canvas."""

    name = "svg"

    async def render(self, target: RenderTarget) -> RasterImage:
        log = logger.bind(rasterizer=self.name, element_id=target.element_id)

        markup = await self.page.evaluate(
            SERIALIZE_SCRIPT, [target.element_id, list(STYLE_PATCHES.items())]
        )
        if markup is None:
            raise RasterizationError(
                f"Could not find element with ID '{target.element_id}'", stage="locate"
            )

        svg = render_foreign_object_svg(markup, target.width, target.height)
        log.debug("Built SVG wrapper", svg_kb=round(len(svg) / 1024))

        result = await self.page.evaluate(
            RASTERIZE_SVG_SCRIPT,
            {
                "svg": svg,
                "width": target.width,
                "height": target.height,
                "scale": self.scale,
            },
        )
        image = self._image_from_result(result, target)
        log.info("Rasterized element", width=image.pixel_width, height=image.pixel_height)
        return image
