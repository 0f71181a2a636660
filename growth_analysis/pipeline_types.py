"""
Records produced by a pipeline run.

StepResult and PipelineRunResult are serialized to pipeline_run.json;
DropReport travels in the result bundle and in the cleaning log record.
"""

import subprocess
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class StepStatus(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


def _now_iso():
    return datetime.now(timezone.utc).isoformat()


def _get_git_sha():
    """Return the short git SHA of the current HEAD, or None."""
    try:
        return subprocess.check_output(
            ["git", "rev-parse", "--short", "HEAD"],
            stderr=subprocess.DEVNULL,
            text=True,
        ).strip()
    except (subprocess.SubprocessError, FileNotFoundError):
        return None


@dataclass
class StepResult:
    """Outcome of one pipeline step.

    ``warnings`` holds findings that did not fail the step: model
    diagnostics and lenient schema violations found after it.
    """

    step_name: str
    status: str
    input_summary: dict = field(default_factory=dict)
    output_summary: dict = field(default_factory=dict)
    timing_seconds: float = 0.0
    warnings: list = field(default_factory=list)
    error: Optional[str] = None
    started_at: Optional[str] = None
    completed_at: Optional[str] = None

    @property
    def ok(self):
        return self.status == StepStatus.SUCCESS

    def to_dict(self):
        return {
            "step_name": self.step_name,
            "status": self.status,
            "input_summary": self.input_summary,
            "output_summary": self.output_summary,
            "timing_seconds": self.timing_seconds,
            "warnings": self.warnings,
            "error": self.error,
            "started_at": self.started_at,
            "completed_at": self.completed_at,
        }

    @classmethod
    def from_dict(cls, d):
        return cls(**{k: d[k] for k in cls.__dataclass_fields__ if k in d})


@dataclass
class DropReport:
    """Row counts removed at each cleaning stage.

    Dropping incomplete observations is policy, not failure; this record
    keeps those drops auditable.
    """

    rows_in: int = 0
    unclassified: int = 0
    incomplete: int = 0
    rows_out: int = 0
    incomplete_by_field: dict = field(default_factory=dict)

    @property
    def total_dropped(self):
        return self.rows_in - self.rows_out

    def to_dict(self):
        return {
            "rows_in": self.rows_in,
            "unclassified": self.unclassified,
            "incomplete": self.incomplete,
            "rows_out": self.rows_out,
            "total_dropped": self.total_dropped,
            "incomplete_by_field": dict(self.incomplete_by_field),
        }


@dataclass
class PipelineRunResult:
    """Provenance of one run: settings, step outcomes and files written.

    ``bundle_path`` stays None unless every critical step succeeded.
    """

    output_dir: str = ""
    run_id: Optional[str] = None
    years: list = field(default_factory=list)
    cross_section_year: Optional[int] = None
    inflation_lag: Optional[str] = None
    drop_report: dict = field(default_factory=dict)
    step_results: list = field(default_factory=list)
    total_time_seconds: float = 0.0
    output_files: list = field(default_factory=list)
    bundle_path: Optional[str] = None
    git_sha: Optional[str] = field(default_factory=_get_git_sha)
    started_at: str = field(default_factory=_now_iso)

    @property
    def all_ok(self):
        return all(s.ok for s in self.step_results)

    @property
    def failed_steps(self):
        return [s for s in self.step_results if not s.ok]

    def to_dict(self):
        return {
            "output_dir": self.output_dir,
            "run_id": self.run_id,
            "years": self.years,
            "cross_section_year": self.cross_section_year,
            "inflation_lag": self.inflation_lag,
            "drop_report": self.drop_report,
            "steps": [s.to_dict() for s in self.step_results],
            "total_time_seconds": self.total_time_seconds,
            "output_files": self.output_files,
            "bundle_path": self.bundle_path,
            "all_ok": self.all_ok,
            "git_sha": self.git_sha,
            "started_at": self.started_at,
        }

    @classmethod
    def from_dict(cls, d):
        """Reconstruct a PipelineRunResult from pipeline_run.json."""
        result = cls(
            output_dir=d.get("output_dir", ""),
            run_id=d.get("run_id"),
            years=d.get("years", []),
            cross_section_year=d.get("cross_section_year"),
            inflation_lag=d.get("inflation_lag"),
            drop_report=d.get("drop_report", {}),
            total_time_seconds=d.get("total_time_seconds", 0.0),
            output_files=d.get("output_files", []),
            bundle_path=d.get("bundle_path"),
            git_sha=d.get("git_sha"),
            started_at=d.get("started_at", ""),
        )
        result.step_results = [
            StepResult.from_dict(s) for s in d.get("steps", [])
        ]
        return result
