"""
Page Inspector

Captures a point-in-time view of a page: an optional screenshot followed by
a bounded DOM snapshot of headings, buttons, links and form inputs, each
with a synthesized selector.

Selectors are synthesized in a fixed priority order so the same DOM always
yields the same selector, preferring identifiers that survive re-renders:
#id, data-testid, name, href (links), text (short buttons), tag.classes, tag.
"""

import logging
from pathlib import Path
from typing import Optional, Union

from playwright.async_api import Page

from ..models import Inspection

logger = logging.getLogger(__name__)

MAX_HEADINGS = 5
MAX_BUTTONS = 15
MAX_LINKS = 15
MAX_INPUTS = 10

# Evaluated inside the page; must stay free of side effects
SNAPSHOT_JS = """(limits) => {
    const isVisible = (el) => {
        if (el.offsetParent === null && el !== document.body) return false;
        const rect = el.getBoundingClientRect();
        if (rect.width === 0 || rect.height === 0) return false;
        const style = window.getComputedStyle(el);
        if (style.display === 'none' || style.visibility === 'hidden' || style.opacity === '0') {
            return false;
        }
        return true;
    };

    const inViewport = (el) => {
        const rect = el.getBoundingClientRect();
        return rect.bottom > 0 && rect.right > 0 &&
               rect.top < window.innerHeight && rect.left < window.innerWidth;
    };

    const textOf = (el) => (el.innerText || el.textContent || '').replace(/\\s+/g, ' ').trim();

    const truncate = (value, max) => (value || '').substring(0, max);

    const usableHref = (href) => !!href && href !== '#' && !href.startsWith('javascript:');

    const isButton = (el) =>
        el.tagName === 'BUTTON' || el.getAttribute('role') === 'button';

    const selectorFor = (el) => {
        const tag = el.tagName.toLowerCase();
        if (el.id) return '#' + CSS.escape(el.id);

        const testId = el.getAttribute('data-testid');
        if (testId) return `[data-testid=${JSON.stringify(testId)}]`;

        const name = el.getAttribute('name');
        if (name) return `[name=${JSON.stringify(name)}]`;

        if (tag === 'a') {
            const href = el.getAttribute('href');
            if (usableHref(href)) return `a[href=${JSON.stringify(href)}]`;
        }

        if (isButton(el)) {
            const text = textOf(el);
            if (text && text.length < 30) return `text=${JSON.stringify(text)}`;
        }

        const classes = Array.from(el.classList).filter(Boolean).slice(0, 2);
        if (classes.length) return tag + classes.map((c) => '.' + CSS.escape(c)).join('');

        return tag;
    };

    const visible = (selector) =>
        Array.from(document.querySelectorAll(selector)).filter(isVisible);

    const headings = visible('h1, h2, h3')
        .slice(0, limits.headings)
        .map((el) => ({ tag: el.tagName.toLowerCase(), text: truncate(textOf(el), 100) }));

    const buttons = visible('button, [role="button"], input[type="submit"]')
        .slice(0, limits.buttons)
        .map((el) => ({
            text: truncate(textOf(el) || el.value || el.getAttribute('aria-label') || '', 50),
            selector: selectorFor(el),
            inViewport: inViewport(el),
        }));

    const links = visible('a[href]')
        .filter((el) => usableHref(el.getAttribute('href')))
        .slice(0, limits.links)
        .map((el) => ({
            text: truncate(textOf(el), 50),
            href: truncate(el.href, 100),
            selector: selectorFor(el),
            inViewport: inViewport(el),
        }));

    const inputs = visible('input, textarea, select')
        .filter((el) => (el.getAttribute('type') || '').toLowerCase() !== 'hidden')
        .slice(0, limits.inputs)
        .map((el) => ({
            type: el.type || el.tagName.toLowerCase(),
            name: el.getAttribute('name') || el.id || null,
            selector: selectorFor(el),
            placeholder: el.getAttribute('placeholder'),
            inViewport: inViewport(el),
        }));

    return {
        url: window.location.href,
        title: document.title,
        headings,
        buttons,
        links,
        inputs,
    };
}"""

SNAPSHOT_LIMITS = {
    "headings": MAX_HEADINGS,
    "buttons": MAX_BUTTONS,
    "links": MAX_LINKS,
    "inputs": MAX_INPUTS,
}


async def capture(
    page: Page,
    screenshot_path: Optional[Union[str, Path]] = None,
    full_page: bool = False,
) -> Inspection:
    """
    Inspect the page.

    The screenshot is taken before the DOM snapshot so both describe the
    same moment as closely as possible.

    Args:
        page: Playwright Page instance
        screenshot_path: Where to save a PNG screenshot (skipped if None)
        full_page: Capture the full scrollable page instead of the viewport

    Returns:
        Inspection of the page
    """
    saved_path = None
    if screenshot_path is not None:
        Path(screenshot_path).parent.mkdir(parents=True, exist_ok=True)
        await page.screenshot(path=str(screenshot_path), full_page=full_page)
        saved_path = str(screenshot_path)

    snapshot = await page.evaluate(SNAPSHOT_JS, SNAPSHOT_LIMITS)

    inspection = Inspection.model_validate({**snapshot, "screenshotPath": saved_path})
    logger.debug(
        f"Inspected {inspection.url}: {len(inspection.buttons)} buttons, "
        f"{len(inspection.links)} links, {len(inspection.inputs)} inputs"
    )
    return inspection
