"""
browser.context_utils
Build BrowserContext arguments for the mobile layout the pipeline is tuned to.
"""

from __future__ import annotations

from typing import Dict, List

from capture.constants import MOBILE_USER_AGENT

THEME_INIT_SCRIPT = """
try {
  localStorage.setItem('theme', 'light');
  document.documentElement.classList.remove('dark');
} catch (e) {}
"""


def launch_args() -> List[str]:
    return [
        "--lang=en-US",
        "--no-sandbox",
        "--disable-setuid-sandbox",
        "--disable-dev-shm-usage",
        "--disable-gpu",
        "--no-first-run",
        "--disable-blink-features=AutomationControlled",
    ]


def make_context_args(
    width: int,
    height: int,
    dpr: float,
    warnings: List[dict],
) -> Dict:
    """Context parameters emulating an iPhone-class viewport.

    Rules:
    - width/height are the working viewport; non-positive values fall back to 800x1414.
    - dpr <= 0 falls back to 2.
    - problems are recorded in warnings, never raised.
    """
    if width <= 0 or height <= 0:
        warnings.append({"code": "VIEWPORT_INVALID", "stage": "launch", "viewport": [width, height]})
        width, height = 800, 1414
    if dpr <= 0:
        warnings.append({"code": "DPR_INVALID", "stage": "launch", "dpr": dpr})
        dpr = 2.0
    return {
        "viewport": {"width": int(width), "height": int(height)},
        "device_scale_factor": float(dpr),
        "is_mobile": True,
        "has_touch": True,
        "user_agent": MOBILE_USER_AGENT,
        "locale": "en-US",
        "color_scheme": "light",
    }
