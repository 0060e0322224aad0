import argparse
import asyncio
import logging
import os
import smtplib
import sys
from dataclasses import replace
from datetime import datetime
from pathlib import Path

from dotenv import load_dotenv

from . import __version__
from .config import load_settings
from .environments import ENVIRONMENTS, resolve_targets
from .errors import ConfigError, FixtureError, UnknownEnvironment
from .fixtures import FIXTURES, get_fixture, load_fixture_file
from .mailer import send_report
from .report import build_health_report
from .runner import run_environments

logger = logging.getLogger(__name__)


def build_parser():
    parser = argparse.ArgumentParser(
        prog="cert-healthcheck",
        description="Check the certification dropdown on every registration site and mail a report.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("list", help="show environments, URLs and fixtures")

    verify = sub.add_parser("verify", help="run the dropdown check in a browser")
    verify.add_argument(
        "environments", nargs="*", metavar="ENV",
        help="environment slugs (default: every environment with a built-in fixture)",
    )
    verify.add_argument("--fixture", type=Path, help="JSON list of {title, subtitle} for a single ENV")
    verify.add_argument("--headed", action="store_true", help="show the browser window")

    report = sub.add_parser("report", help="build the health report and mail it")
    report.add_argument("--dry-run", action="store_true", help="do not send mail")
    report.add_argument("--output", type=Path, help="also write the HTML report here")
    return parser


def cmd_list(args, settings):
    for target in resolve_targets(settings):
        fixture = FIXTURES.get(target.slug)
        count = f"{len(fixture)} certifications" if fixture else "no built-in fixture"
        print(f"{target.slug:<16} {target.url:<42} {count}")
    return 0


def _fixtures_for(args, targets):
    if args.fixture:
        if len(targets) != 1:
            raise FixtureError("--fixture needs exactly one environment")
        return {targets[0].slug: load_fixture_file(args.fixture)}
    return {t.slug: get_fixture(t.slug) for t in targets}


def cmd_verify(args, settings):
    slugs = args.environments or [env.slug for env in ENVIRONMENTS if env.slug in FIXTURES]
    if args.headed:
        settings = replace(settings, headless=False)
    try:
        targets = resolve_targets(settings, slugs)
        fixtures = _fixtures_for(args, targets)
    except (UnknownEnvironment, FixtureError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    outcomes = asyncio.run(run_environments(targets, fixtures, settings))
    failed = [o for o in outcomes if not o.passed]
    for outcome in outcomes:
        state = "passed" if outcome.passed else "failed"
        if outcome.flaky:
            state = "flaky"
        logger.info("%s: %s after %d attempt(s)", outcome.target.name, state, outcome.attempts)
    return 1 if failed else 0


def cmd_report(args, settings):
    if not args.dry_run:
        try:
            settings.mail.validate()
        except ConfigError as e:
            print(e, file=sys.stderr)
            return 1

    targets = resolve_targets(settings)
    report = build_health_report(targets, datetime.now().strftime("%Y-%m-%d %H:%M:%S"))
    if not report.healthy:
        logger.warning("⚠️ %d of %d tests failed", report.failed, report.total)

    if args.output:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        args.output.write_text(report.html, encoding="utf-8")
        logger.info("Report written to %s", args.output)

    if args.dry_run:
        print(report.subject)
        if not args.output:
            print(report.html)
        return 0

    try:
        send_report(report, settings.mail)
    except (smtplib.SMTPException, OSError):
        logger.exception("Sending the health check report failed")
        return 1
    return 0


COMMANDS = {
    "list": cmd_list,
    "verify": cmd_verify,
    "report": cmd_report,
}


def main(argv=None):
    load_dotenv()
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="[%(asctime)s] %(message)s",
        datefmt="%H:%M:%S",
    )

    try:
        settings = load_settings(os.environ)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    return COMMANDS[args.command](args, settings)


if __name__ == "__main__":
    sys.exit(main())
