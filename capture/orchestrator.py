"""
capture.orchestrator
One capture request end to end: resolve → navigate → readiness → page mode →
rules → fit → re-apply → screenshot → metadata.

Only invalid input, a missing engine, and navigation or screenshot failures end a
request early; they come back as a failed CaptureResult. Everything else degrades
into a structured warning and the pipeline carries on. An unexpected exception is
logged with its traceback and reported as INTERNAL_ERROR.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Dict, List, Optional

from rules import (
    BASE_RULES,
    DEBUG_OVERLAY,
    REAPPLY_RULES,
    RuleContext,
    ensure_helpers,
    load_helpers_source,
    mode_rules,
    run_rule,
    run_rules,
)

from .config import CaptureConfig
from .constants import (
    BUY_READY_TIMEOUT_MS,
    CHART_PRIMITIVE_SELECTOR,
    CHART_READY_TIMEOUT_MS,
    FONTS_TIMEOUT_MS,
    MAIN_READY_TIMEOUT_MS,
    MAIN_SELECTOR,
    NETWORK_IDLE_TIMEOUT_MS,
    POLL_INTERVAL_MS,
    WARN_ELEMENT_NOT_FOUND,
    WARN_FIT_SKIPPED,
    WARN_FONTS_TIMEOUT,
    WARN_HELPERS_UNAVAILABLE,
    WARN_IMAGE_SIZE_MISMATCH,
    WARN_OBSERVE_FAILED,
    WARN_READY_TIMEOUT,
)
from .errors import EngineUninitializedError, ShotError, StaleGeometryError
from .fitter import apply_fit_plan, plan_fit
from .geometry import probe_geometry
from .image_utils import expected_pixels, png_size
from .models import CaptureRequest, CaptureResult, FitPlan, PageMode
from .page_mode import PageObservation, observe_page, resolve_page_mode
from .utils import (
    build_file_name,
    clean_page_title,
    compute_dimensions,
    format_title_from_slug,
    resolve_target,
    working_viewport_height,
)

logger = logging.getLogger(__name__)

BUY_LABELS_READY_JS = """
() => Array.from(document.querySelectorAll('.trading-button-text'))
  .filter((el) => (el.textContent || '').trim().toLowerCase().startsWith('buy ')).length >= 2
"""

FONTS_READY_JS = "() => !document.fonts || document.fonts.status === 'loaded'"

SETTLE_FRAMES_JS = """
() => new Promise((resolve) => requestAnimationFrame(() => requestAnimationFrame(() => resolve(true))))
"""

SCROLL_TOP_JS = "() => { window.scrollTo(0, 0); return window.scrollY; }"

PAGE_TITLE_JS = """
() => {
  const h1 = document.querySelector('h1');
  return { title: document.title || '', h1: h1 ? (h1.textContent || '').trim() : '' };
}
"""


class _Timer:
    """Millisecond timings per stage."""

    def __init__(self) -> None:
        self.timings: Dict[str, int] = {}
        self._t0 = time.perf_counter()
        self._last = self._t0

    def mark(self, stage: str) -> None:
        now = time.perf_counter()
        self.timings[stage] = int((now - self._last) * 1000)
        self._last = now

    def total(self) -> None:
        self.timings["total"] = int((time.perf_counter() - self._t0) * 1000)


class CaptureOrchestrator:
    def __init__(self, config: CaptureConfig) -> None:
        self.config = config

    async def run(self, request: CaptureRequest, session: Any) -> CaptureResult:
        """Run one request; every failure comes back as a failed result, never raised."""
        try:
            return await self._run(request, session)
        except ShotError as e:
            logger.error("capture failed for %s: %s", request.source_url, e)
            return CaptureResult(
                success=False,
                source_url=request.source_url,
                error=str(e),
                error_code=e.code,
            )
        except Exception as e:
            logger.exception("unexpected failure capturing %s", request.source_url)
            return CaptureResult(
                success=False,
                source_url=request.source_url,
                error=f"[INTERNAL_ERROR@capture] {e}",
                error_code="INTERNAL_ERROR",
            )

    async def _run(self, request: CaptureRequest, session: Any) -> CaptureResult:
        timer = _Timer()
        request.validate()
        target = resolve_target(request.source_url)
        width = int(request.width or self.config.default_width)
        dsf = float(request.device_scale_factor or self.config.device_scale_factor)
        _, height = compute_dimensions(request.aspect, width)
        timer.mark("resolve")

        if session is None or not session.is_connected():
            raise EngineUninitializedError(
                code="ENGINE_UNINITIALIZED", stage="launch", message="no live browser session"
            )

        page = await session.new_page(width, working_viewport_height(height), dsf)
        try:
            return await self._capture(page, request, target, width, height, dsf, timer)
        finally:
            await page.close()

    async def _capture(self, page, request, target, width, height, dsf, timer: _Timer) -> CaptureResult:
        warnings: List[Dict[str, Any]] = []

        await page.install_script(load_helpers_source())
        logger.info("navigating to %s", target.navigation_url)
        await page.navigate(target.navigation_url, timeout_ms=self.config.nav_timeout_ms)
        timer.mark("navigate")

        await self._await_ready(page, target, warnings)
        if not await ensure_helpers(page):
            logger.warning("page helpers unavailable after navigation")
            warnings.append({"code": WARN_HELPERS_UNAVAILABLE, "stage": "ready"})
        await page.set_viewport(width, height)
        page.note_mutation()
        timer.mark("ready")

        observation = await self._observe(page, warnings)
        mode, mode_warnings = resolve_page_mode(observation, target)
        warnings.extend(mode_warnings)
        logger.info("page mode: %s", mode)
        timer.mark("page_mode")

        ctx = RuleContext(
            request=request, target=target, mode=mode, width=width, height=height, warnings=warnings
        )
        await run_rules(page, BASE_RULES, ctx)
        await run_rules(page, mode_rules(mode, target), ctx)
        timer.mark("rules")

        # rules may have scrolled (time range tabs); measure in capture coordinates
        await page.evaluate(SCROLL_TOP_JS)
        page.note_mutation()
        plan = await self._fit(page, mode, width, height, warnings)
        timer.mark("fit")

        if ctx.state.get("rerendered"):
            await run_rules(page, REAPPLY_RULES, ctx)
        if request.debug_layout:
            await run_rule(page, DEBUG_OVERLAY, ctx)

        await page.evaluate(SCROLL_TOP_JS)
        capture_height = plan.viewport_height_px or height
        image = await page.screenshot(clip=plan.clip_rect)
        timer.mark("capture")

        self._check_size(image, width, capture_height, dsf, ctx)
        title = await self._extract_title(page, mode, ctx)
        timer.total()
        return CaptureResult(
            success=True,
            source_url=request.source_url,
            image_bytes=image,
            file_name=build_file_name(target, request.aspect),
            market_title=title,
            page_mode=mode.kind,
            width=width,
            height=capture_height,
            device_scale_factor=dsf,
            warnings=ctx.warnings,
            timings=timer.timings,
        )

    async def _await_ready(self, page, target, warnings: List[Dict[str, Any]]) -> None:
        """Independent bounded waits; each expiry is a warning, not a failure."""
        checks = [
            ("main", page.wait_for_selector(MAIN_SELECTOR, timeout_ms=MAIN_READY_TIMEOUT_MS)),
            ("chart", page.wait_for_selector(CHART_PRIMITIVE_SELECTOR, timeout_ms=CHART_READY_TIMEOUT_MS)),
            ("network_idle", page.wait_for_network_idle(NETWORK_IDLE_TIMEOUT_MS)),
        ]
        if not target.nested_outcome_slug:
            checks.append(
                (
                    "buy_labels",
                    page.wait_for_function(
                        BUY_LABELS_READY_JS, timeout_ms=BUY_READY_TIMEOUT_MS, polling=POLL_INTERVAL_MS
                    ),
                )
            )
        results = await asyncio.gather(*(waiter for _, waiter in checks))
        for (signal, _), ok in zip(checks, results):
            if not ok:
                logger.warning("readiness signal %s timed out", signal)
                warnings.append({"code": WARN_READY_TIMEOUT, "stage": "ready", "signal": signal})

        if not await page.wait_for_function(FONTS_READY_JS, timeout_ms=FONTS_TIMEOUT_MS, polling=POLL_INTERVAL_MS):
            logger.warning("fonts not loaded within %dms", FONTS_TIMEOUT_MS)
            warnings.append({"code": WARN_FONTS_TIMEOUT, "stage": "ready"})
        await page.evaluate(SETTLE_FRAMES_JS)

    async def _observe(self, page, warnings: List[Dict[str, Any]]) -> PageObservation:
        try:
            return await observe_page(page)
        except Exception as e:
            logger.warning("page observation failed: %s", e)
            warnings.append({"code": WARN_OBSERVE_FAILED, "stage": "page_mode", "error": str(e)})
            return PageObservation()

    async def _fit(self, page, mode: PageMode, width: int, height: int, warnings: List[Dict[str, Any]]) -> FitPlan:
        """Probe, plan and apply. A failure leaves the base layout and an unused plan."""
        try:
            snapshot = await probe_geometry(page)
            plan = plan_fit(snapshot, mode, current_epoch=page.mutation_epoch, width=width, height=height)
            if "chart-missing" in plan.notes:
                warnings.append({"code": WARN_ELEMENT_NOT_FOUND, "stage": "fit", "element": "chart"})
            applied = await apply_fit_plan(page, plan, width=width)
        except StaleGeometryError:
            raise
        except Exception as e:
            logger.warning("layout fit skipped: %s", e)
            warnings.append({"code": WARN_FIT_SKIPPED, "stage": "fit", "error": str(e)})
            return FitPlan(snapshot_epoch=page.mutation_epoch)
        logger.debug("fit applied: %s (notes=%s)", applied, plan.notes)
        return plan

    def _check_size(self, image: bytes, width: int, height: int, dsf: float, ctx: RuleContext) -> None:
        actual = png_size(image)
        expected = expected_pixels(width, height, dsf)
        if actual is not None and actual != expected:
            logger.warning("captured image is %sx%s, expected %sx%s", *actual, *expected)
            ctx.warn(
                WARN_IMAGE_SIZE_MISMATCH,
                "capture",
                expected=list(expected),
                actual=list(actual),
            )

    async def _extract_title(self, page, mode: PageMode, ctx: RuleContext) -> str:
        if mode.is_nested:
            return ctx.state.get("title") or format_title_from_slug(mode.outcome_slug or "")
        data = await page.evaluate(PAGE_TITLE_JS)
        data = data if isinstance(data, dict) else {}
        title: Optional[str] = clean_page_title(data.get("title"))
        return title or str(data.get("h1") or "")
