"""
capture.constants
Constants shared by the pipeline: target site, sizing, timeouts, DOM markers.
"""

TARGET_DOMAIN = "polymarket.com"
CANONICAL_BASE = "https://polymarket.com/event"
TITLE_SUFFIXES = (" Betting Odds & Predictions | Polymarket", " | Polymarket")

ASPECTS = ("twitter", "square")
TIME_RANGES = ("1h", "6h", "1d", "1w", "1m", "max")
WATERMARK_MODES = ("none", "wordmark", "icon")

DEFAULT_ASPECT = "twitter"
DEFAULT_TIME_RANGE = "6h"
DEFAULT_WATERMARK = "none"
DEFAULT_WIDTH = 800
MIN_WIDTH = 320
MAX_WIDTH = 2000
DEFAULT_DEVICE_SCALE_FACTOR = 2.0
DEFAULT_INVESTMENT = 150
TWITTER_RATIO = 8 / 7
WORKING_VIEWPORT_MIN_HEIGHT = 1200
WORKING_VIEWPORT_EXTRA = 500

MOBILE_USER_AGENT = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
)

# Readiness waits (ms); navigation is the only fatal one.
NAV_TIMEOUT_MS = 30000
MAIN_READY_TIMEOUT_MS = 20000
CHART_READY_TIMEOUT_MS = 15000
NETWORK_IDLE_TIMEOUT_MS = 3000
BUY_READY_TIMEOUT_MS = 8000
FONTS_TIMEOUT_MS = 5000
BANNER_REPOLL_TIMEOUT_MS = 1000
PANEL_TIMEOUT_MS = 1500
RERENDER_TIMEOUT_MS = 4000
POLL_INTERVAL_MS = 100

MAIN_SELECTOR = 'main, [role="main"]'
CHART_PRIMITIVE_SELECTOR = 'canvas, svg[class*="chart"], [class*="recharts"], .visx-axis-tick'
LEGEND_DOT_SELECTOR = ".size-2.rounded-full"

# Layout fitter
BASE_CHART_HEIGHT = 400
BASE_CHART_FLOOR = 300
NESTED_CHART_FLOOR = 160
CHIP_REDUCE_MIN = 28
CHIP_REDUCE_MAX = 90
CHIP_HEIGHT_MIN = 24
CHIP_HEIGHT_MAX = 44
CHIP_MAX_GAP = 120
CHIP_MIN_CLEARANCE = 4
OVERLAP_BUFFER = 12
OVERLAP_MARGIN = 10
NESTED_BOTTOM_BUFFER = 8
TRADE_CTA_HEIGHT = 124
CLIP_PADDING = 24

# DOM markers written by the rule set
WATERMARK_ID = "chart-watermark-overlay"
TRADE_CTA_ID = "event-trade-button-container"
APPLIED_ATTR = "data-shot-applied"
HIDDEN_ATTR = "data-shot-hidden"
TAB_TARGET_ATTR = "data-shot-tab-target"
CARD_INDEX_ATTR = "data-shot-card-index"

# Structured warning codes
WARN_ELEMENT_NOT_FOUND = "ELEMENT_NOT_FOUND"
WARN_OUTCOME_MATCH_AMBIGUOUS = "OUTCOME_MATCH_AMBIGUOUS"
WARN_READY_TIMEOUT = "READY_TIMEOUT"
WARN_FONTS_TIMEOUT = "FONTS_TIMEOUT"
WARN_RULE_ERROR = "RULE_ERROR"
WARN_TIME_RANGE_NOT_FOUND = "TIME_RANGE_NOT_FOUND"
WARN_RERENDER_TIMEOUT = "RERENDER_TIMEOUT"
WARN_IMAGE_SIZE_MISMATCH = "IMAGE_SIZE_MISMATCH"
WARN_HELPERS_UNAVAILABLE = "HELPERS_UNAVAILABLE"
WARN_OBSERVE_FAILED = "OBSERVE_FAILED"
WARN_FIT_SKIPPED = "FIT_SKIPPED"

PRODUCTION_VERSION = "v1"
