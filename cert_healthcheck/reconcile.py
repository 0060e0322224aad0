"""Expected-vs-actual comparison of certification dropdown contents.

Matching is deliberately lenient: a rendered title matches an expected one
when, ignoring case, either contains the other (truncated or code-suffixed
rendering). Two unrelated titles where one happens to be a
substring of the other will therefore match.
"""
from dataclasses import dataclass
from typing import Tuple

CONTROL_LABELS = frozenset({"Cancel", "Back", "Continue"})


@dataclass(frozen=True)
class ExtractionResult:
    actual_titles: Tuple[str, ...] = ()
    actual_subtitles: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ReconciliationResult:
    missing_titles: Tuple[str, ...] = ()
    missing_subtitles: Tuple[str, ...] = ()
    extra_titles: Tuple[str, ...] = ()

    @property
    def ok(self):
        return not self.missing_titles and not self.missing_subtitles


def clean_texts(texts, ignore=CONTROL_LABELS):
    cleaned = []
    for text in texts:
        if text is None:
            continue
        text = text.strip()
        if text and text not in ignore:
            cleaned.append(text)
    return cleaned


def titles_match(actual, expected):
    actual, expected = actual.lower(), expected.lower()
    return expected in actual or actual in expected


def text_present(needle, haystack):
    needle = needle.lower()
    return any(needle in text.lower() for text in haystack)


def _unique(items):
    return tuple(dict.fromkeys(items))


def find_extra_titles(expected_titles, actual_titles):
    return _unique(
        actual for actual in actual_titles
        if not any(titles_match(actual, expected) for expected in expected_titles)
    )


def reconcile(fixture, extraction):
    titles = tuple(extraction.actual_titles)
    # subtitles are looked up in the whole dropdown text, not only <p> nodes
    dropdown_text = tuple(extraction.actual_subtitles) + titles

    missing_titles = []
    missing_subtitles = []
    for cert in fixture:
        if not any(titles_match(actual, cert.title) for actual in titles):
            missing_titles.append(cert.title)
        if not text_present(cert.subtitle, dropdown_text):
            missing_subtitles.append(cert.subtitle)

    return ReconciliationResult(
        missing_titles=_unique(missing_titles),
        missing_subtitles=_unique(missing_subtitles),
        extra_titles=find_extra_titles([c.title for c in fixture], titles),
    )
