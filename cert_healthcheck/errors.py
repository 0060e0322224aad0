class HealthCheckError(Exception):
    """Base class for everything the health check raises on purpose."""


class ConfigError(HealthCheckError):
    pass


class FixtureError(HealthCheckError):
    pass


class UnknownEnvironment(HealthCheckError, KeyError):
    def __str__(self):
        return f"Unknown environment: {self.args[0]}"


class CertificationsNotLoaded(HealthCheckError, TimeoutError):
    """The dropdown never rendered a single certification title."""


class CertificationMismatch(HealthCheckError, AssertionError):
    """One or more expected titles/subtitles were not found in the dropdown."""

    def __init__(self, environment, result, found_titles, found_subtitles):
        self.environment = environment
        self.result = result
        lines = []
        for title in result.missing_titles:
            lines.append(f"{environment} certification missing: {title}")
        if result.missing_titles:
            lines.append(f"Titles found: {', '.join(found_titles) or 'none'}")
        for subtitle in result.missing_subtitles:
            lines.append(f"{environment} subtitle missing: {subtitle}")
        if result.missing_subtitles:
            lines.append(f"Subtitles found: {', '.join(found_subtitles) or 'none'}")
        super().__init__("\n".join(lines))


class CheckTimeout(HealthCheckError, TimeoutError):
    """A whole environment check ran past its time limit."""
