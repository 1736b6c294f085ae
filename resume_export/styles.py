"""
Style patch layer.

Rasterization does not reliably resolve externally loaded utility CSS, so a
fixed set of semantic utility classes is rewritten into inline
``background-color`` declarations before any rasterization. The same table
drives the live-DOM patch (run inside a browser page) and the markup patch
(BeautifulSoup over serialized HTML).
"""

import re

import structlog
from bs4 import BeautifulSoup, Tag

logger = structlog.get_logger()

# Semantic utility class -> literal colour. First match in this order wins, so
# an element carrying both classes ends up with the gray background.
STYLE_PATCHES = {
    "bg-gray-50": "#F9FAFB",
    "bg-yellow-300": "#FFEB3B",
}

# Utility classes whose colours must survive the browser print dialog.
PRINT_BACKGROUND_RULES = {
    "bg-[#1e3a8a]": "#1e3a8a",
    "bg-[#25D366]": "#25D366",
    "bg-[#333333]": "#333333",
    "bg-[#0055AA]": "#0055AA",
    "bg-[#24292e]": "#24292e",
    "bg-[#e53e3e]": "#e53e3e",
    "bg-yellow-300": "#FFEB3B",
    "bg-gray-50": "#F9FAFB",
    "bg-gray-100": "#f3f4f6",
    "bg-white": "#FFFFFF",
    "bg-green-600": "#059669",
    "bg-blue-600": "#2563EB",
    "bg-gray-800": "#1F2937",
}

PRINT_TEXT_RULES = {
    "text-blue-800": "#1e40af",
    "text-blue-600": "#2563eb",
    "text-green-800": "#065f46",
    "text-gray-800": "#1f2937",
    "text-gray-600": "#4b5563",
    "text-blue-100": "#dbeafe",
    "text-blue-50": "#eff6ff",
    "text-white": "white",
}

_CSS_IDENT_SAFE = re.compile(r"[A-Za-z0-9_-]")

# Runs in the page: [root, patches] -> number of patched elements
PATCH_ELEMENT_SCRIPT = """
([root, patches]) => {
    let patched = 0;
    const elements = [root, ...root.querySelectorAll('[class]')];
    for (const el of elements) {
        if (!el.classList) continue;
        for (const [className, color] of patches) {
            if (el.classList.contains(className)) {
                el.style.setProperty('background-color', color);
                patched += 1;
                break;
            }
        }
    }
    return patched;
}
"""


def css_class_selector(class_name: str) -> str:
    """Escape a utility class name (e.g. ``bg-[#1e3a8a]``) into a CSS selector."""
    escaped = "".join(
        ch if _CSS_IDENT_SAFE.match(ch) else f"\\{ch}" for ch in class_name
    )
    return f".{escaped}"


def _parse_inline_style(style: str) -> list[tuple[str, str]]:
    declarations = []
    for chunk in style.split(";"):
        prop, sep, value = chunk.partition(":")
        if not sep or not prop.strip():
            continue
        declarations.append((prop.strip().lower(), value.strip()))
    return declarations


def _serialize_inline_style(declarations: list[tuple[str, str]]) -> str:
    return "; ".join(f"{prop}: {value}" for prop, value in declarations)


def _patch_color(classes: list[str]) -> str | None:
    for class_name, color in STYLE_PATCHES.items():
        if class_name in classes:
            return color
    return None


def patch_element(element: Tag) -> bool:
    """
    Rewrite one element's inline background colour if a class matches.

    Returns:
        True if the element matched a patch class
    """
    classes = element.get("class") or []
    if isinstance(classes, str):
        classes = classes.split()
    color = _patch_color(classes)
    if color is None:
        return False

    declarations = [
        (prop, value)
        for prop, value in _parse_inline_style(element.get("style") or "")
        if prop != "background-color"
    ]
    declarations.append(("background-color", color))
    element["style"] = _serialize_inline_style(declarations)
    return True


def patch_soup(soup: BeautifulSoup | Tag) -> int:
    """
    Apply the style patches to every element of a parsed subtree.

    Returns:
        Number of patched elements
    """
    elements = [soup] if isinstance(soup, Tag) and soup.name != "[document]" else []
    elements.extend(soup.find_all(class_=True))
    return sum(1 for element in elements if patch_element(element))


def patch_markup(html: str) -> str:
    """Return ``html`` with the style patches applied. Idempotent."""
    soup = BeautifulSoup(html, "html.parser")
    patched = patch_soup(soup)
    logger.debug("Applied style patches to markup", patched=patched)
    return str(soup)


async def apply_style_patches(page, root) -> int:
    """
    Apply the style patches to a live element subtree inside a browser page.

    Args:
        page: Playwright page owning the element
        root: ElementHandle of the subtree root

    Returns:
        Number of patched elements
    """
    patched = await page.evaluate(
        PATCH_ELEMENT_SCRIPT, [root, list(STYLE_PATCHES.items())]
    )
    logger.debug("Applied style patches in page", patched=patched)
    return patched
