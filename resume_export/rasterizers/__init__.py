"""Client rasterizers."""

from ..exceptions import InputError
from .base import Rasterizer, measure_target
from .clone import CloneRasterizer, offscreen_clone
from .svg import SvgRasterizer

__all__ = [
    "Rasterizer",
    "SvgRasterizer",
    "CloneRasterizer",
    "measure_target",
    "offscreen_clone",
    "get_rasterizer",
]
RASTERIZERS = {"svg": SvgRasterizer, "clone": CloneRasterizer}


def get_rasterizer(method: str, page) -> Rasterizer:
    """Instantiate the rasterizer registered under ``method`` for ``page``."""
    try:
        return RASTERIZERS[method](page)
    except KeyError:
        raise InputError(
            f"Unknown rasterization method: {method}. "
            f"Use one of: {', '.join(RASTERIZERS)}",
            stage="validate",
        ) from None
