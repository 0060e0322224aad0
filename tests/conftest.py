import pytest

from cert_healthcheck.config import RetryPolicy, Settings
from cert_healthcheck.fixtures import CertificationRecord


class FakeTexts:
    """Stands in for ``dropdown.locator(sel)``; each read returns the next frame."""

    def __init__(self, frames):
        self.frames = [list(f) for f in frames] or [[]]
        self.calls = 0

    @property
    def current(self):
        return self.frames[min(self.calls, len(self.frames) - 1)]

    async def all_text_contents(self):
        frame = self.current
        self.calls += 1
        return list(frame)


class FakeTextMatch:
    def __init__(self, dropdown, text):
        self.dropdown = dropdown
        self.text = text

    @property
    def first(self):
        return self

    async def is_visible(self):
        self.dropdown.visibility_checks.append(self.text)
        needle = self.text.lower()
        shown = self.dropdown.titles.current + self.dropdown.subtitles.current
        return any(needle in t.lower() for t in shown)


class FakeDropdown:
    def __init__(self, title_frames, subtitle_frames=None):
        self.titles = FakeTexts(title_frames)
        self.subtitles = FakeTexts(subtitle_frames or [[]])
        self.visibility_checks = []
        self.states = []

    async def wait_for(self, state="visible", timeout=None):
        self.states.append(state)

    def locator(self, selector):
        return self.titles if selector == "h3" else self.subtitles

    def get_by_text(self, text):
        return FakeTextMatch(self, text)


class SleepRecorder:
    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


@pytest.fixture
def no_sleep():
    return SleepRecorder()


@pytest.fixture
def fast_settings(tmp_path):
    return Settings(
        report_dir=tmp_path / "report",
        load_policy=RetryPolicy(max_attempts=3, interval=2),
        collect_policy=RetryPolicy(max_attempts=2, interval=2),
        item_policy=RetryPolicy(max_attempts=2, interval=2),
    )


@pytest.fixture
def ageing_fixture():
    return (
        CertificationRecord(
            "CHC33021 Certificate IV in Ageing Support",
            "Certificate IV in Ageing Support",
        ),
    )


@pytest.fixture
def clean_env(monkeypatch):
    for name in (
        "DEMO_URL", "ETRAINING_URL", "ETRAINING_STAGE_URL", "AIA_URL", "AIA_STAGE_URL",
        "AIFT_URL", "AIFT_STAGE_URL", "REPORT_DIR", "HEADLESS", "TEST_RETRIES",
        "SMTP_HOST", "SMTP_PORT", "SMTP_USER", "SMTP_PASS", "MAIL_FROM", "MAIL_TO",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch
