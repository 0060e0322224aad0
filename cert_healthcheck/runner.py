"""Drives the registration flow up to the certification dropdown, per environment."""
import asyncio
import json
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from playwright.async_api import async_playwright

from .dropdown import DROPDOWN_SELECTOR, DropdownExtractor, verify_dropdown
from .errors import CheckTimeout, HealthCheckError
from .retry import run_with_retry
from .summary import EnvironmentSummary

logger = logging.getLogger(__name__)

REGISTRATION_PATH = "/new"
PERSONAL_DETAILS = (
    ('input[placeholder="First name"]', "Test"),
    ('input[placeholder="Last name"]', "User"),
    ('input[placeholder="Email address"]', "test@example.com"),
    ('input[placeholder="Phone number"]', "0412345678"),
    ('input[type="password"]', "TestPass123!"),
)
CONTINUE_BUTTON = 'button:has-text("Continue")'
STEP_TWO_HEADING = 'h1:has-text("Choose Your Path")'
QUALIFICATION_TRIGGER = 'div[class*="cursor-pointer"]:has-text("Select your Qualification...")'
RETRY_DELAY = 10


def _ms(seconds):
    return seconds * 1000


@dataclass
class CheckOutcome:
    target: object
    passed: bool
    attempts: int
    started_at: datetime
    duration: float
    error: Optional[str] = None

    @property
    def flaky(self):
        return self.passed and self.attempts > 1


def write_results(path, outcome):
    """Persist run statistics in the shape the health report reads (``stats.*``)."""
    stats = {
        "expected": 1 if outcome.passed and not outcome.flaky else 0,
        "unexpected": 0 if outcome.passed else 1,
        "flaky": 1 if outcome.flaky else 0,
        "skipped": 0,
        "startTime": outcome.started_at.isoformat(),
        "duration": round(outcome.duration * 1000),
    }
    data = {
        "environment": outcome.target.name,
        "url": outcome.target.url,
        "attempts": outcome.attempts,
        "stats": stats,
        "errors": [outcome.error] if outcome.error else [],
    }
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
    return path


async def open_certification_dropdown(page, label, timeouts):
    logger.info("%s: Navigating to registration page...", label)
    await page.goto(REGISTRATION_PATH, wait_until="domcontentloaded", timeout=_ms(timeouts.navigation))
    # networkidle may never happen on these sites
    await page.wait_for_load_state("domcontentloaded")

    logger.info("%s: Filling personal information...", label)
    for selector, value in PERSONAL_DETAILS:
        await page.fill(selector, value, timeout=_ms(timeouts.default))

    logger.info("%s: Clicking Continue button...", label)
    await page.click(CONTINUE_BUTTON, timeout=_ms(timeouts.default))

    logger.info("%s: Waiting for step 2 to load...", label)
    await page.wait_for_selector(STEP_TWO_HEADING, state="visible", timeout=_ms(timeouts.step))
    await page.wait_for_timeout(2000)

    logger.info("%s: Opening certification dropdown...", label)
    await page.click(QUALIFICATION_TRIGGER, timeout=_ms(timeouts.default))

    dropdown = page.locator(DROPDOWN_SELECTOR)
    await dropdown.wait_for(state="visible", timeout=_ms(timeouts.dropdown))
    return dropdown


async def select_certification(page, dropdown, title, label, timeouts):
    """Pick one certification and make sure the dropdown closes. Nothing is submitted."""
    logger.info("%s Testing selection of: %s", label, title)
    await page.click(f"text={title}", timeout=_ms(timeouts.default))
    await dropdown.wait_for(state="hidden", timeout=_ms(timeouts.hidden))
    logger.info("✅ %s Selected: %s", label, title)


async def capture_failure(page, target, attempt):
    path = Path(target.screenshot_file).with_name(f"{target.slug}-failure-attempt-{attempt}.png")
    try:
        await page.screenshot(path=str(path), full_page=True)
        logger.info("📸 Saved failure screenshot to: %s", path)
    except Exception as e:
        logger.warning("⚠️ Failed to save screenshot: %s", e)


async def check_environment(target, fixture, settings, browser, attempt=1, context_options=None):
    summary = EnvironmentSummary.start(target.name, fixture)
    timeouts = settings.timeouts

    with summary.recording(target.summary_file):
        context = await browser.new_context(base_url=target.url, **(context_options or {}))
        try:
            page = await context.new_page()
            page.on("pageerror", lambda err: logger.warning("%s PageError: %s", target.name, err))
            page.set_default_navigation_timeout(_ms(timeouts.navigation))
            page.set_default_timeout(_ms(timeouts.default))

            try:
                dropdown = await open_certification_dropdown(page, target.name, timeouts)
                logger.info("%s Environment - Verifying certification dropdown values...", target.name)
                extractor = DropdownExtractor(dropdown, settings, label=target.name)
                await page.wait_for_timeout(1000)
                await verify_dropdown(fixture, extractor, summary, settings.item_policy)

                await select_certification(page, dropdown, fixture[0].title, target.name, timeouts)
                logger.info("✅ %s Certification dropdown validation complete", target.name)

                target.screenshot_file.parent.mkdir(parents=True, exist_ok=True)
                await page.screenshot(path=str(target.screenshot_file))
                logger.info("📸 Screenshot saved: %s", target.screenshot_file)
                summary.mark_passed()
            except Exception:
                await capture_failure(page, target, attempt)
                raise
        finally:
            await context.close()
    return summary


async def run_environment(target, fixture, settings, browser, context_options=None):
    started_at = datetime.now(timezone.utc)
    start = time.monotonic()
    attempts = 0

    async def attempt_once():
        nonlocal attempts
        attempts += 1
        check = check_environment(target, fixture, settings, browser, attempt=attempts,
                                  context_options=context_options)
        try:
            return await asyncio.wait_for(check, timeout=settings.timeouts.test)
        except asyncio.TimeoutError as e:
            if isinstance(e, HealthCheckError):
                raise
            raise CheckTimeout(
                f"{target.name} test timed out after {settings.timeouts.test:.0f}s"
            ) from e

    error = None
    try:
        await run_with_retry(
            attempt_once,
            name=f"{target.name} certification check",
            retries=settings.test_retries + 1,
            delay=RETRY_DELAY,
        )
    except Exception as e:
        error = f"{type(e).__name__}: {e}"

    outcome = CheckOutcome(
        target=target,
        passed=error is None,
        attempts=attempts,
        started_at=started_at,
        duration=time.monotonic() - start,
        error=error,
    )
    write_results(target.result_file, outcome)
    if outcome.passed:
        logger.info("✅ %s passed (%d attempt(s))", target.name, attempts)
    else:
        logger.error("❌ %s failed: %s", target.name, error)
    return outcome


async def run_environments(targets, fixtures, settings):
    """Check all targets concurrently, each in its own browser context."""
    async with async_playwright() as p:
        browser = await p.chromium.launch(
            headless=settings.headless, args=["--no-sandbox", "--disable-setuid-sandbox"],
        )
        context_options = dict(p.devices["Desktop Chrome"])
        context_options.pop("default_browser_type", None)
        try:
            return await asyncio.gather(*(
                run_environment(target, fixtures[target.slug], settings, browser,
                                context_options=context_options)
                for target in targets
            ))
        finally:
            await browser.close()
