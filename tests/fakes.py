"""
In-memory stand-ins for the automation engine.

FakePage answers page.evaluate from a table keyed by the exact JS source; a value
is returned as-is and a callable is called with the evaluate argument. Every call
is recorded so tests can assert on what the pipeline asked the page to do.
"""

from __future__ import annotations

from io import BytesIO
from typing import Any, Callable, Dict, List, Optional, Tuple

from PIL import Image

from rules import HELPERS_PRESENT_JS


def png_bytes(width: int, height: int) -> bytes:
    buf = BytesIO()
    Image.new("RGB", (max(1, width), max(1, height)), (255, 255, 255)).save(buf, format="PNG")
    return buf.getvalue()


class FakePage:
    def __init__(
        self,
        handlers: Optional[Dict[str, Any]] = None,
        *,
        width: int = 800,
        height: int = 1414,
        device_scale_factor: float = 2.0,
    ) -> None:
        self.handlers: Dict[str, Any] = {HELPERS_PRESENT_JS: True}
        self.handlers.update(handlers or {})
        self.viewport: Tuple[int, int] = (width, height)
        self.device_scale_factor = device_scale_factor
        self.mutation_epoch = 0
        self.calls: List[Tuple[str, Any]] = []
        self.waited_functions: List[str] = []
        self.waited_selectors: List[str] = []
        self.viewports: List[Tuple[int, int]] = []
        self.clicks: List[str] = []
        self.screenshots: List[Dict[str, Any]] = []
        self.installed: List[str] = []
        self.selector_results: Dict[str, bool] = {}
        self.function_results: Dict[str, bool] = {}
        self.network_idle = True
        self.click_result = True
        self.nav_error: Optional[Exception] = None
        self.url = "about:blank"
        self.closed = False

    def note_mutation(self) -> None:
        self.mutation_epoch += 1

    def evaluated(self, expression: str) -> List[Any]:
        """Arguments of every evaluate call made with this expression."""
        return [arg for expr, arg in self.calls if expr == expression]

    async def navigate(self, url: str, *, timeout_ms: int, wait_until: str = "domcontentloaded") -> None:
        if self.nav_error is not None:
            raise self.nav_error
        self.url = url
        self.note_mutation()

    async def evaluate(self, expression: str, arg: Any = None) -> Any:
        self.calls.append((expression, arg))
        handler = self.handlers.get(expression)
        if callable(handler):
            return handler(arg)
        return handler

    async def wait_for_selector(self, selector: str, *, timeout_ms: int, state: str = "attached") -> bool:
        self.waited_selectors.append(selector)
        return self.selector_results.get(selector, True)

    async def wait_for_function(self, expression: str, arg: Any = None, *, timeout_ms: int, polling: int = 100) -> bool:
        self.waited_functions.append(expression)
        return self.function_results.get(expression, True)

    async def wait_for_network_idle(self, timeout_ms: int) -> bool:
        return self.network_idle

    async def set_viewport(self, width: int, height: int) -> None:
        self.viewport = (int(width), int(height))
        self.viewports.append(self.viewport)

    async def click(self, selector: str, *, timeout_ms: int = 2000) -> bool:
        self.clicks.append(selector)
        return self.click_result

    async def install_script(self, source: str) -> None:
        self.installed.append(source)

    async def screenshot(self, *, clip: Optional[Dict[str, int]] = None, full_page: bool = False) -> bytes:
        self.screenshots.append({"clip": clip, "full_page": full_page})
        w, h = (clip["width"], clip["height"]) if clip else self.viewport
        scale = self.device_scale_factor
        return png_bytes(int(round(w * scale)), int(round(h * scale)))

    async def close(self) -> None:
        self.closed = True


class FakeSession:
    """Stands in for BrowserSession; hands out pages built by page_factory."""

    def __init__(self, page_factory: Optional[Callable[[], FakePage]] = None, *, version: str = "v1") -> None:
        self.page_factory = page_factory or FakePage
        self.version = version
        self.pages: List[FakePage] = []
        self.connected = True
        self.closed = False

    def is_connected(self) -> bool:
        return self.connected and not self.closed

    async def new_page(self, width: int, height: int, device_scale_factor: float) -> FakePage:
        page = self.page_factory()
        page.viewport = (width, height)
        page.device_scale_factor = device_scale_factor
        self.pages.append(page)
        return page

    async def close(self) -> None:
        self.closed = True
