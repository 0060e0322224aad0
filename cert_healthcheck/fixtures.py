import json
from dataclasses import dataclass
from pathlib import Path

from .errors import FixtureError


@dataclass(frozen=True)
class CertificationRecord:
    title: str
    subtitle: str


# BSB/CHC qualifications offered on the AIA sites
AIA_CERTIFICATIONS = (
    CertificationRecord(
        "BSB50420 Diploma of Leadership Management",
        "Diploma of Leadership Management",
    ),
    CertificationRecord(
        "BSB60420 Advanced Diploma of Leadership Management",
        "Advanced Diploma of Leadership Management",
    ),
    CertificationRecord(
        "CHC33021 Certificate IV in Ageing Support",
        "Certificate IV in Ageing Support",
    ),
    CertificationRecord(
        "CHC43015 Certificate III in Individual Support",
        "Certificate III in Individual Support",
    ),
    CertificationRecord(
        "CHC52025 Diploma of Community Services",
        "Diploma of Community Services",
    ),
    CertificationRecord(
        "CHC52025 Graduate Diploma of Management",
        "Graduate Diploma of Management",
    ),
)

FIXTURES = {
    "aia": AIA_CERTIFICATIONS,
    "aia-stage": AIA_CERTIFICATIONS,
}


def get_fixture(slug):
    try:
        return FIXTURES[slug]
    except KeyError:
        raise FixtureError(
            f"No built-in certification list for '{slug}'. Pass one with --fixture FILE."
        ) from None


def parse_fixture(data, source="<fixture>"):
    """Turn a decoded JSON list of {"title", "subtitle"} objects into records."""
    if not isinstance(data, list) or not data:
        raise FixtureError(f"{source}: expected a non-empty JSON list")

    records = []
    for index, item in enumerate(data):
        if not isinstance(item, dict):
            raise FixtureError(f"{source}[{index}]: expected an object")
        title = item.get("title")
        subtitle = item.get("subtitle")
        if not isinstance(title, str) or not title.strip():
            raise FixtureError(f"{source}[{index}]: 'title' must be a non-empty string")
        if not isinstance(subtitle, str) or not subtitle.strip():
            raise FixtureError(f"{source}[{index}]: 'subtitle' must be a non-empty string")
        records.append(CertificationRecord(title.strip(), subtitle.strip()))

    titles = [r.title for r in records]
    duplicates = sorted({t for t in titles if titles.count(t) > 1})
    if duplicates:
        raise FixtureError(f"{source}: duplicate titles {duplicates}")
    return tuple(records)


def load_fixture_file(path):
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise FixtureError(f"Cannot read fixture {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise FixtureError(f"{path}: invalid JSON ({e})") from e
    return parse_fixture(data, source=str(path))
