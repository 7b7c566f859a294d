"""Headless browser driver used to capture fully rendered pages."""

from __future__ import annotations

import logging
from contextlib import AsyncExitStack
from dataclasses import dataclass

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from services.capture.exceptions import LaunchError, NavigationError


logger = logging.getLogger(__name__)

VIEWPORT = {"width": 1280, "height": 720}

SCROLL_TO_BOTTOM_JS = "() => window.scrollTo(0, document.body.scrollHeight)"
SCROLL_TO_TOP_JS = "() => window.scrollTo(0, 0)"


@dataclass(slots=True)
class RenderedPage:
    """Serialized DOM of a page after scripts ran and lazy content loaded."""

    html: str
    final_url: str
    title: str | None = None


class BrowserDriver:
    """Drive one Chromium instance per capture.

    The browser runs with its own sandbox enabled and default web security;
    every launched instance is closed before ``capture`` returns, on success
    and on failure.
    """

    def __init__(
        self,
        *,
        user_agent: str,
        timeout_seconds: float = 30.0,
        scroll_pause_ms: int = 2000,
        settle_pause_ms: int = 1000,
    ) -> None:
        self.user_agent = user_agent
        self.timeout_ms = int(timeout_seconds * 1000)
        self.scroll_pause_ms = scroll_pause_ms
        self.settle_pause_ms = settle_pause_ms

    async def capture(self, url: str) -> RenderedPage:
        """Load ``url`` and return its rendered DOM.

        Raises:
            LaunchError: If Chromium cannot be started.
            NavigationError: If navigation times out or fails.
        """
        async with AsyncExitStack() as stack:
            try:
                p = await stack.enter_async_context(async_playwright())
                browser = await p.chromium.launch(headless=True, chromium_sandbox=True)
            except (PlaywrightError, OSError) as e:
                logger.warning("Chromium launch failed: %s", e)
                raise LaunchError(f"Headless browser failed to launch: {e}") from e

            try:
                context = await browser.new_context(
                    user_agent=self.user_agent,
                    viewport=VIEWPORT,
                    accept_downloads=False,
                    service_workers="block",
                )
                page = await context.new_page()
                try:
                    await page.goto(url, wait_until="networkidle", timeout=self.timeout_ms)
                except PlaywrightTimeoutError as e:
                    raise NavigationError(
                        f"Navigation timed out after {self.timeout_ms // 1000}s"
                    ) from e
                except PlaywrightError as e:
                    raise NavigationError(f"Navigation failed: {e.message}") from e

                # Trigger lazy-loaded content, then let it settle
                await page.evaluate(SCROLL_TO_BOTTOM_JS)
                await page.wait_for_timeout(self.scroll_pause_ms)
                await page.evaluate(SCROLL_TO_TOP_JS)
                await page.wait_for_timeout(self.settle_pause_ms)

                html = await page.content()
                title = await page.title()
                return RenderedPage(html=html, final_url=page.url, title=title or None)
            except PlaywrightError as e:
                raise NavigationError(f"Page capture failed: {e.message}") from e
            finally:
                await browser.close()
