import json
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

logger = logging.getLogger(__name__)

PENDING = "pending"
PASSED = "passed"
FAILED = "failed"


@dataclass
class EnvironmentSummary:
    environment_name: str
    status: str = PENDING
    expected_certifications: List[str] = field(default_factory=list)
    expected_subtitles: List[str] = field(default_factory=list)
    actual_certifications: List[str] = field(default_factory=list)
    actual_subtitles: List[str] = field(default_factory=list)
    missing_certifications: List[str] = field(default_factory=list)
    missing_subtitles: List[str] = field(default_factory=list)
    extra_certifications: List[str] = field(default_factory=list)

    @classmethod
    def start(cls, environment_name, fixture):
        return cls(
            environment_name=environment_name,
            expected_certifications=[cert.title for cert in fixture],
            expected_subtitles=[cert.subtitle for cert in fixture],
        )

    def record_extraction(self, extraction):
        self.actual_certifications = list(extraction.actual_titles)
        self.actual_subtitles = list(extraction.actual_subtitles)

    def record_reconciliation(self, result):
        self.missing_certifications = list(result.missing_titles)
        self.missing_subtitles = list(result.missing_subtitles)
        self.extra_certifications = list(result.extra_titles)

    def mark_passed(self):
        self.status = PASSED

    def mark_failed(self):
        self.status = FAILED

    def to_dict(self):
        return {
            "environmentName": self.environment_name,
            "status": self.status,
            "expectedCertifications": self.expected_certifications,
            "expectedSubtitles": self.expected_subtitles,
            "actualCertifications": self.actual_certifications,
            "actualSubtitles": self.actual_subtitles,
            "missingCertifications": self.missing_certifications,
            "missingSubtitles": self.missing_subtitles,
            "extraCertifications": self.extra_certifications,
        }

    def write(self, path):
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8")
        logger.info("%s: summary written to %s (%s)", self.environment_name, path, self.status)
        return path

    @contextmanager
    def recording(self, path):
        """Write the summary when the block exits, however it exits.

        An exception marks the summary failed and is re-raised after the write;
        a block that finishes without calling :meth:`mark_passed` also counts
        as failed.
        """
        try:
            yield self
        except BaseException:
            self.mark_failed()
            raise
        else:
            if self.status == PENDING:
                self.mark_failed()
        finally:
            self.write(path)
