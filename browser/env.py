"""
Playwright-backed automation engine used by the capture pipeline.

The core only talks to two objects:
  - BrowserSession: one launched Chromium process (the SessionHandle payload)
      new_page(width, height, device_scale_factor) -> PWPage
      is_connected() -> bool
      close() -> None
  - PWPage: one page exclusively owned by a single capture request
      navigate(url, *, timeout_ms, wait_until) -> None      (raises NavigationError)
      evaluate(expression, arg=None) -> serializable
      wait_for_selector(selector, *, timeout_ms, state) -> bool
      wait_for_function(expression, arg=None, *, timeout_ms) -> bool
      wait_for_network_idle(timeout_ms) -> bool
      set_viewport(width, height) -> None
      click(selector, *, timeout_ms) -> bool
      install_script(source) -> None
      screenshot(*, clip=None, full_page=False) -> bytes   (raises CaptureError)
      close() -> None

Bounded waits return False on timeout instead of raising, so callers can log and
continue degraded. Navigation and screenshot failures are the only fatal ones.

Usage:
  from browser.env import launch_session
  session = await launch_session(config)
  page = await session.new_page(800, 1414, 2)
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from capture.config import CaptureConfig
from capture.errors import CaptureError, NavigationError

from .context_utils import THEME_INIT_SCRIPT, launch_args, make_context_args

logger = logging.getLogger(__name__)


class PWPage:
    def __init__(self, page, context, *, device_scale_factor: float = 2.0) -> None:
        self._page = page
        self._context = context
        self._closed = False
        self.device_scale_factor = device_scale_factor
        # bumped after every DOM-mutating pass; geometry snapshots record it
        self.mutation_epoch = 0

    @property
    def url(self) -> str:
        try:
            return self._page.url or ""
        except Exception:
            return ""

    def note_mutation(self) -> None:
        self.mutation_epoch += 1

    # Navigation
    async def navigate(self, url: str, *, timeout_ms: int, wait_until: str = "domcontentloaded") -> None:
        try:
            await self._page.goto(url, timeout=max(1, int(timeout_ms)), wait_until=wait_until)
        except PlaywrightTimeoutError as e:
            raise NavigationError(
                code="NAV_TIMEOUT", stage="navigate", message=f"timed out loading {url}", original=e
            ) from e
        except PlaywrightError as e:
            raise NavigationError(code="NAV_ERROR", stage="navigate", message=str(e), original=e) from e
        self.note_mutation()

    async def evaluate(self, expression: str, arg: Any = None) -> Any:
        if arg is None:
            return await self._page.evaluate(expression)
        return await self._page.evaluate(expression, arg)

    # Bounded waits
    async def wait_for_selector(self, selector: str, *, timeout_ms: int, state: str = "attached") -> bool:
        try:
            await self._page.wait_for_selector(selector, state=state, timeout=max(1, int(timeout_ms)))
            return True
        except PlaywrightTimeoutError:
            return False

    async def wait_for_function(self, expression: str, arg: Any = None, *, timeout_ms: int, polling: int = 100) -> bool:
        try:
            await self._page.wait_for_function(
                expression, arg=arg, timeout=max(1, int(timeout_ms)), polling=polling
            )
            return True
        except PlaywrightTimeoutError:
            return False

    async def wait_for_network_idle(self, timeout_ms: int) -> bool:
        try:
            await self._page.wait_for_load_state("networkidle", timeout=max(1, int(timeout_ms)))
            return True
        except PlaywrightTimeoutError:
            return False

    # Actions
    async def set_viewport(self, width: int, height: int) -> None:
        await self._page.set_viewport_size({"width": int(width), "height": int(height)})

    async def click(self, selector: str, *, timeout_ms: int = 2000) -> bool:
        """Native click on the first match; False when Playwright could not click it."""
        try:
            await self._page.locator(selector).first.click(timeout=max(1, int(timeout_ms)), delay=20)
            return True
        except (PlaywrightTimeoutError, PlaywrightError) as e:
            logger.debug("native click on %s failed: %s", selector, e)
            return False

    async def install_script(self, source: str) -> None:
        """Register a script for future navigations and run it in the current document."""
        await self._page.add_init_script(script=source)
        if self._page.url and self._page.url != "about:blank":
            await self._page.add_script_tag(content=source)

    async def screenshot(self, *, clip: Optional[Dict[str, int]] = None, full_page: bool = False) -> bytes:
        try:
            if clip:
                return await self._page.screenshot(type="png", clip=clip, full_page=True)
            return await self._page.screenshot(type="png", full_page=full_page)
        except PlaywrightError as e:
            raise CaptureError(code="CAPTURE_ERROR", stage="capture", message=str(e), original=e) from e

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await self._page.close()
        except PlaywrightError:
            pass
        try:
            await self._context.close()
        except PlaywrightError:
            pass


class BrowserSession:
    """A launched browser plus the Playwright driver that owns it."""

    def __init__(self, playwright, browser, *, version: str) -> None:
        self._playwright = playwright
        self._browser = browser
        self.version = version
        self._closed = False

    def is_connected(self) -> bool:
        if self._closed:
            return False
        try:
            return bool(self._browser.is_connected())
        except Exception:
            return False

    async def new_page(self, width: int, height: int, device_scale_factor: float) -> PWPage:
        warnings: List[dict] = []
        args = make_context_args(width, height, device_scale_factor, warnings)
        for w in warnings:
            logger.warning("context args: %s", w)
        context = await self._browser.new_context(**args)
        await context.add_init_script(script=THEME_INIT_SCRIPT)
        page = await context.new_page()
        return PWPage(page, context, device_scale_factor=device_scale_factor)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await self._browser.close()
        except PlaywrightError as e:
            logger.warning("browser close failed: %s", e)
        try:
            await self._playwright.stop()
        except Exception as e:
            logger.warning("playwright stop failed: %s", e)


async def launch_session(config: CaptureConfig, version: str = "") -> BrowserSession:
    """Start Chromium for the given config; the caller owns the returned session."""
    pw = await async_playwright().start()
    try:
        kwargs: Dict[str, Any] = {"headless": config.headless, "args": launch_args()}
        if config.chromium_path:
            kwargs["executable_path"] = config.chromium_path
        browser = await pw.chromium.launch(**kwargs)
    except Exception:
        await pw.stop()
        raise
    logger.info("browser launched (version=%s, headless=%s)", version or "-", config.headless)
    return BrowserSession(pw, browser, version=version)
