"""
capture.cli
Capture one market page from the command line.

Usage:
  python -m capture.cli https://polymarket.com/event/will-x-happen --aspect square --out shots
Writes <fileName> and <fileName>.meta.json into --out; exit code 0 on success, 1 on failure.
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import List, Optional

from .config import CaptureConfig
from .constants import ASPECTS, DEFAULT_INVESTMENT, TIME_RANGES
from .models import CaptureRequest, CaptureResult, PayoutOptions, normalize_watermark
from .service import ScreenshotService
from .utils import write_json

logger = logging.getLogger(__name__)


def _parse_args(argv: Optional[List[str]] = None):
    import argparse

    p = argparse.ArgumentParser(description="Render a Polymarket page into a share-ready PNG.")
    p.add_argument("url", help="Market or event URL, e.g. https://polymarket.com/event/<slug>")
    p.add_argument("--aspect", default="twitter", choices=list(ASPECTS), help="Output aspect (default: twitter)")
    p.add_argument("--width", type=int, default=None, help="Logical width in CSS px (default: SHOT_DEFAULT_WIDTH or 800)")
    p.add_argument("--time-range", default="6h", choices=list(TIME_RANGES), help="Chart time range (default: 6h)")
    p.add_argument("--watermark", default="none", help="none | wordmark | icon (true/false also accepted)")
    p.add_argument("--debug-layout", action="store_true", help="Outline fit regions in the output image")
    p.add_argument("--payout", action="store_true", help="Annotate buy buttons with the potential payout")
    p.add_argument("--investment", type=float, default=DEFAULT_INVESTMENT, help="Stake used for payout labels (default: 150)")
    p.add_argument("--out", default=".", help="Output directory (default: current directory)")
    p.add_argument("--verbose", action="store_true", help="Debug logging")
    return p.parse_args(argv)


def _write_outputs(result: CaptureResult, out_dir: str) -> Optional[str]:
    if not result.success or not result.image_bytes or not result.file_name:
        return None
    os.makedirs(out_dir, exist_ok=True)
    path = os.path.join(out_dir, result.file_name)
    with open(path, "wb") as f:
        f.write(result.image_bytes)
    write_json(path + ".meta.json", result.to_dict())
    return path


async def _run(request: CaptureRequest, config: CaptureConfig) -> CaptureResult:
    service = ScreenshotService(config)
    try:
        return await service.capture(request)
    finally:
        await service.close()


def _cli(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    request = CaptureRequest(
        source_url=args.url,
        aspect=args.aspect,
        time_range=args.time_range,
        watermark_mode=normalize_watermark(args.watermark),
        debug_layout=args.debug_layout,
        payout=PayoutOptions(show=args.payout, investment=args.investment),
        width=args.width,
    )
    result = asyncio.run(_run(request, CaptureConfig.from_env()))
    if not result.success:
        logger.error("capture failed: %s", result.error)
        return 1
    path = _write_outputs(result, args.out)
    for w in result.warnings:
        logger.info("warning: %s", w)
    print(path)
    return 0


def main() -> None:
    raise SystemExit(_cli())


if __name__ == "__main__":
    main()
