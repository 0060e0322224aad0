import asyncio
import json
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path

import pytest

from cert_healthcheck import runner
from cert_healthcheck.config import Timeouts
from cert_healthcheck.environments import resolve_targets
from cert_healthcheck.errors import CertificationsNotLoaded
from cert_healthcheck.fixtures import AIA_CERTIFICATIONS
from cert_healthcheck.report import build_health_report
from cert_healthcheck.runner import CheckOutcome, check_environment, run_environment, write_results

from conftest import FakeDropdown


@pytest.fixture
def target(fast_settings):
    return resolve_targets(fast_settings, ["aia-stage"])[0]


@pytest.fixture(autouse=True)
def instant_retry(monkeypatch):
    monkeypatch.setattr(runner, "RETRY_DELAY", 0)


def read(path):
    return json.loads(path.read_text(encoding="utf-8"))


def outcome(target, passed, attempts, error=None):
    return CheckOutcome(
        target=target, passed=passed, attempts=attempts,
        started_at=datetime(2026, 10, 19, tzinfo=timezone.utc), duration=1.5, error=error,
    )


def test_write_results_shapes(target):
    data = read(write_results(target.result_file, outcome(target, True, 1)))
    assert data["stats"]["expected"] == 1
    assert data["stats"]["unexpected"] == 0
    assert data["stats"]["flaky"] == 0
    assert data["stats"]["duration"] == 1500
    assert data["errors"] == []

    data = read(write_results(target.result_file, outcome(target, True, 2)))
    assert (data["stats"]["expected"], data["stats"]["flaky"]) == (0, 1)

    data = read(write_results(target.result_file, outcome(target, False, 3, "boom")))
    assert (data["stats"]["expected"], data["stats"]["unexpected"]) == (0, 1)
    assert data["errors"] == ["boom"]


def test_run_environment_pass_after_retry_is_flaky(monkeypatch, target, fast_settings, ageing_fixture):
    settings = replace(fast_settings, test_retries=2)
    calls = []

    async def fake_check(target, fixture, settings, browser, attempt=1, context_options=None):
        calls.append(attempt)
        if attempt == 1:
            raise CertificationsNotLoaded("AIA-STAGE certifications did not load")
        return "summary"

    monkeypatch.setattr(runner, "check_environment", fake_check)
    result = asyncio.run(run_environment(target, ageing_fixture, settings, browser=None))

    assert calls == [1, 2]
    assert result.passed and result.flaky
    assert read(target.result_file)["stats"]["flaky"] == 1
    # flaky passes still show up as failures in the health report
    report = build_health_report([target], "now")
    assert (report.passed, report.failed) == (0, 1)


def test_run_environment_failure_writes_results(monkeypatch, target, fast_settings, ageing_fixture):
    async def fake_check(target, fixture, settings, browser, attempt=1, context_options=None):
        raise CertificationsNotLoaded("AIA-STAGE certifications did not load")

    monkeypatch.setattr(runner, "check_environment", fake_check)
    result = asyncio.run(run_environment(target, ageing_fixture, fast_settings, browser=None))

    assert not result.passed
    assert result.attempts == 1
    assert "did not load" in result.error
    data = read(target.result_file)
    assert data["stats"]["unexpected"] == 1
    assert "CertificationsNotLoaded" in data["errors"][0]


def test_run_environment_times_out(monkeypatch, target, fast_settings, ageing_fixture):
    settings = replace(fast_settings, timeouts=Timeouts(test=0.01))

    async def hanging_check(target, fixture, settings, browser, attempt=1, context_options=None):
        await asyncio.Event().wait()

    monkeypatch.setattr(runner, "check_environment", hanging_check)
    result = asyncio.run(run_environment(target, ageing_fixture, settings, browser=None))

    assert not result.passed
    assert "CheckTimeout" in result.error
    assert "timed out" in result.error


class FakePage:
    def __init__(self, dropdown, fail_on=None):
        self.dropdown = dropdown
        self.fail_on = fail_on
        self.calls = []
        self.handlers = {}

    def on(self, event, handler):
        self.handlers[event] = handler

    def set_default_navigation_timeout(self, timeout):
        self.navigation_timeout = timeout

    def set_default_timeout(self, timeout):
        self.default_timeout = timeout

    async def _step(self, name, arg=None):
        self.calls.append((name, arg))
        if name == self.fail_on:
            raise RuntimeError(f"{name} failed")

    async def goto(self, url, **kwargs):
        await self._step("goto", url)

    async def wait_for_load_state(self, state):
        await self._step("wait_for_load_state", state)

    async def fill(self, selector, value, **kwargs):
        await self._step("fill", selector)

    async def click(self, selector, **kwargs):
        await self._step("click", selector)

    async def wait_for_selector(self, selector, **kwargs):
        await self._step("wait_for_selector", selector)

    async def wait_for_timeout(self, timeout):
        await self._step("wait_for_timeout", timeout)

    def locator(self, selector):
        return self.dropdown

    async def screenshot(self, path, full_page=False):
        await self._step("screenshot", path)
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        Path(path).write_bytes(b"png")


class FakeContext:
    def __init__(self, page):
        self.page = page
        self.closed = False

    async def new_page(self):
        return self.page

    async def close(self):
        self.closed = True


class FakeBrowser:
    def __init__(self, page=None, fail=False):
        self.context = FakeContext(page)
        self.fail = fail
        self.options = None

    async def new_context(self, **options):
        self.options = options
        if self.fail:
            raise RuntimeError("browser has been closed")
        return self.context


def aia_dropdown():
    return FakeDropdown(
        [[c.title for c in AIA_CERTIFICATIONS] + ["Cancel"]],
        [[c.subtitle for c in AIA_CERTIFICATIONS]],
    )


def test_check_environment_selects_one_and_saves_screenshot(target, fast_settings):
    dropdown = aia_dropdown()
    page = FakePage(dropdown)
    browser = FakeBrowser(page)

    summary = asyncio.run(check_environment(target, AIA_CERTIFICATIONS, fast_settings, browser))

    assert summary.status == "passed"
    assert read(target.summary_file)["status"] == "passed"
    assert target.screenshot_file.exists()
    assert browser.options["base_url"] == target.url
    assert ("goto", "/new") in page.calls
    assert [c for c in page.calls if c[0] == "click" and c[1].startswith("text=")] == [
        ("click", f"text={AIA_CERTIFICATIONS[0].title}")
    ]
    assert dropdown.states == ["visible", "hidden"]
    assert browser.context.closed


def test_check_environment_navigation_failure_writes_failed_summary(target, fast_settings):
    page = FakePage(aia_dropdown(), fail_on="goto")
    browser = FakeBrowser(page)

    with pytest.raises(RuntimeError, match="goto failed"):
        asyncio.run(check_environment(target, AIA_CERTIFICATIONS, fast_settings, browser, attempt=2))

    data = read(target.summary_file)
    assert data["status"] == "failed"
    assert data["expectedCertifications"] == [c.title for c in AIA_CERTIFICATIONS]
    assert target.screenshot_file.with_name("aia-stage-failure-attempt-2.png").exists()
    assert not target.screenshot_file.exists()
    assert browser.context.closed


def test_check_environment_context_failure_writes_failed_summary(target, fast_settings):
    browser = FakeBrowser(fail=True)

    with pytest.raises(RuntimeError, match="browser has been closed"):
        asyncio.run(check_environment(target, AIA_CERTIFICATIONS, fast_settings, browser))

    assert read(target.summary_file)["status"] == "failed"
    assert not browser.context.closed
