"""Reading and verifying the certification dropdown on a live page."""
import asyncio
import logging
import time

from playwright.async_api import Error as PlaywrightError

from .errors import CertificationMismatch, CertificationsNotLoaded
from .reconcile import (
    ExtractionResult,
    ReconciliationResult,
    clean_texts,
    find_extra_titles,
    reconcile,
    titles_match,
)
from .retry import poll

logger = logging.getLogger(__name__)

DROPDOWN_SELECTOR = (
    'div[class*="absolute top-full left-0 right-0 mt-2 bg-white border-2 '
    'border-light-grey rounded-2xl shadow-2xl z-10"]'
)
TITLE_SELECTOR = "h3"
SUBTITLE_SELECTOR = "p"


class DropdownExtractor:
    """Pulls certification titles (``h3``) and subtitles (``p``) out of the open dropdown."""

    def __init__(self, dropdown, settings, label="", sleep=asyncio.sleep):
        self.dropdown = dropdown
        self.settings = settings
        self.label = label
        self.sleep = sleep

    async def title_texts(self):
        return clean_texts(await self.dropdown.locator(TITLE_SELECTOR).all_text_contents())

    async def subtitle_texts(self):
        texts = await self.dropdown.locator(SUBTITLE_SELECTOR).all_text_contents()
        return clean_texts(texts, ignore=frozenset())

    async def wait_until_loaded(self):
        policy = self.settings.load_policy
        logger.info("%s: Waiting for certifications to load...", self.label)
        start = time.monotonic()
        titles = await poll(self.title_texts, policy, sleep=self.sleep)
        if not titles:
            limit = policy.deadline if policy.deadline is not None else policy.max_attempts * policy.interval
            raise CertificationsNotLoaded(
                f"{self.label} certifications did not load: no valid <h3> titles found in "
                f"dropdown within {limit:.0f}s. Check backend/API or UI for errors "
                "(API may be taking too long to respond)."
            )
        logger.info(
            "%s: Found %d certifications after %ds",
            self.label, len(titles), round(time.monotonic() - start),
        )
        return titles

    async def extract(self):
        titles = await poll(self.title_texts, self.settings.collect_policy, sleep=self.sleep)
        subtitles = await self.subtitle_texts()
        return ExtractionResult(tuple(titles or ()), tuple(subtitles))

    async def has_title(self, title):
        return any(titles_match(actual, title) for actual in await self.title_texts())

    async def is_text_visible(self, text):
        try:
            return await self.dropdown.get_by_text(text).first.is_visible()
        except PlaywrightError:
            return False


async def verify_dropdown(fixture, extractor, summary, policy, sleep=asyncio.sleep):
    """Check every fixture title and subtitle against the dropdown.

    Items missing from the first extraction are re-polled with ``policy``.
    Every item is checked before :class:`CertificationMismatch` is raised.
    """
    label = summary.environment_name
    try:
        await extractor.wait_until_loaded()
    except CertificationsNotLoaded:
        summary.record_reconciliation(reconcile(fixture, ExtractionResult()))
        raise

    extraction = await extractor.extract()
    summary.record_extraction(extraction)
    logger.info("📋 %s - Found %d certification titles in dropdown", label, len(extraction.actual_titles))
    logger.info("📋 %s - Titles: %s", label, ", ".join(extraction.actual_titles))
    logger.info("📋 %s - Subtitles: %s", label, ", ".join(extraction.actual_subtitles))

    first_pass = reconcile(fixture, extraction)
    summary.record_reconciliation(first_pass)
    if first_pass.extra_titles:
        logger.warning("⚠️ %s - Unexpected titles: %s", label, ", ".join(first_pass.extra_titles))

    missing_titles = []
    missing_subtitles = []
    for cert in fixture:
        logger.info("%s: Checking for certification: %s", label, cert.title)
        if cert.title in first_pass.missing_titles:
            found = await poll(lambda: extractor.has_title(cert.title), policy, sleep=sleep)
            if not found:
                missing_titles.append(cert.title)
                logger.error("%s certification missing: %s", label, cert.title)
        if cert.title not in missing_titles:
            logger.info("✅ %s Found: %s", label, cert.title)

        if cert.subtitle in first_pass.missing_subtitles:
            visible = await poll(lambda: extractor.is_text_visible(cert.subtitle), policy, sleep=sleep)
            if not visible:
                missing_subtitles.append(cert.subtitle)
                logger.error("%s subtitle missing: %s", label, cert.subtitle)
        if cert.subtitle not in missing_subtitles:
            logger.info("✅ %s Subtitle Found: %s", label, cert.subtitle)

    if not first_pass.ok:
        # items may have rendered while re-polling; sample the dropdown again
        extraction = await extractor.extract()
        summary.record_extraction(extraction)

    result = ReconciliationResult(
        missing_titles=tuple(missing_titles),
        missing_subtitles=tuple(missing_subtitles),
        extra_titles=find_extra_titles([c.title for c in fixture], extraction.actual_titles),
    )
    summary.record_reconciliation(result)
    if not result.ok:
        raise CertificationMismatch(
            label, result, extraction.actual_titles, extraction.actual_subtitles,
        )
    return result
