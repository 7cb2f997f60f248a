"""Fixed browser launch configuration.

The browser always runs headless inside containers without a display, so
sandboxing and GPU are disabled and background throttling is turned off to keep
timers predictable while nothing is visible.
"""

from playwright.async_api import ViewportSize

# --no-sandbox / --disable-setuid-sandbox: required when running as root in Docker
CHROMIUM_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--no-first-run",
    "--disable-web-security",
    "--disable-background-timer-throttling",
    "--disable-backgrounding-occluded-windows",
    "--disable-renderer-backgrounding",
]

VIEWPORT: ViewportSize = {"width": 1280, "height": 720}

# Neutral page every fresh or reused session starts on
DEFAULT_URL = "https://example.com/"

# Liveness probe evaluated by the health monitor
PROBE_SCRIPT = "() => document.title"
