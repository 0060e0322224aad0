from dataclasses import dataclass
from pathlib import Path

from .errors import UnknownEnvironment


@dataclass(frozen=True)
class Environment:
    name: str
    slug: str
    url_var: str
    default_url: str
    description: str


@dataclass(frozen=True)
class EnvironmentTarget:
    name: str
    slug: str
    url: str
    description: str
    result_file: Path
    summary_file: Path
    screenshot_file: Path


ENVIRONMENTS = (
    Environment(
        "DEMO", "demo", "DEMO_URL", "https://demo.certified.io",
        "Validates 4 certification options in dropdown",
    ),
    Environment(
        "ETRAINING", "etraining", "ETRAINING_URL", "https://etraining.certified.io",
        "Validates 3 certification cards (with subtitles)",
    ),
    Environment(
        "ETRAINING-STAGE", "etraining-stage", "ETRAINING_STAGE_URL",
        "https://etraining-stage.certified.io",
        "Validates 3 certification cards (with subtitles)",
    ),
    Environment(
        "AIA", "aia", "AIA_URL", "https://aia45775.certified.io",
        "Validates 6 certification options (BSB/CHC qualifications)",
    ),
    Environment(
        "AIA-STAGE", "aia-stage", "AIA_STAGE_URL", "https://aia-stage.certified.io",
        "Validates 6 certification options (BSB/CHC qualifications)",
    ),
    Environment(
        "AIFT", "aift", "AIFT_URL", "https://aift45665.certified.io",
        "Validates 4 certification options (Building & Construction)",
    ),
    Environment(
        "AIFT-STAGE", "aift-stage", "AIFT_STAGE_URL", "https://aift-stage.certified.io",
        "Validates 4 certification options (Building & Construction)",
    ),
)

_BY_SLUG = {env.slug: env for env in ENVIRONMENTS}


def get_environment(slug):
    # accept the display name too, e.g. "AIA-STAGE"
    key = slug.strip().lower()
    if key not in _BY_SLUG:
        raise UnknownEnvironment(slug)
    return _BY_SLUG[key]


def target_for(env, settings):
    report_dir = Path(settings.report_dir)
    return EnvironmentTarget(
        name=env.name,
        slug=env.slug,
        url=settings.url_for(env),
        description=env.description,
        result_file=report_dir / f"{env.slug}-results.json",
        summary_file=report_dir / f"{env.slug}-summary.json",
        screenshot_file=report_dir / f"{env.slug}-certification-dropdown-validated.png",
    )


def resolve_targets(settings, slugs=None):
    """Targets for ``slugs`` (all environments, in report order, when empty)."""
    envs = [get_environment(s) for s in slugs] if slugs else list(ENVIRONMENTS)
    return [target_for(env, settings) for env in envs]
