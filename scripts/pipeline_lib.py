"""Shared data model and utilities for the auto-apply scripts.

Holds the Profile / Job / ApplicationRecord / ApplicationOutcome types passed
between fit scoring, the automation agent and the batch runner, plus the YAML
loaders for config, profiles, jobs and application records.
"""

from dataclasses import dataclass, field, asdict
from pathlib import Path

import copy
import re
import time

import yaml

REPO_ROOT = Path(__file__).resolve().parent.parent
SCRIPTS_DIR = REPO_ROOT / "scripts"

CONFIG_PATH = SCRIPTS_DIR / ".agent-config.yaml"
RECORDS_DIR = REPO_ROOT / "pipeline" / "applications"

# Record statuses, in lifecycle order.
STATUS_ORDER = [
    "pending", "analyzing", "matched", "rejected", "applying", "submitted", "failed",
]
VALID_STATUSES = set(STATUS_ORDER)

VALID_TRANSITIONS = {
    "pending": {"analyzing", "failed"},
    "analyzing": {"matched", "rejected", "failed"},
    "matched": {"applying", "pending", "failed"},
    "applying": {"submitted", "failed"},
    "rejected": set(),
    "submitted": set(),
    "failed": set(),
}

# Terminal agent states for one application attempt.
AGENT_TERMINAL_STATES = {"completed", "error"}

SEVERITIES = ("info", "success", "warning", "error")

# Error classification attached to failed outcomes.
ERROR_VALIDATION = "validation"
ERROR_CONTROL_NOT_FOUND = "control_not_found"
ERROR_BROWSER = "browser"
ERROR_SIMULATED = "simulated"

DEFAULT_CONFIG = {
    "demo_mode": True,
    "headless": True,
    "demo_success_rate": 0.9,
    "demo_delay_seconds": 2.0,
    "match_threshold": 70,
    "applications_per_hour": 10,
    "delay_between_jobs": 4,
    "step_timeout_ms": 10000,
    "navigation_timeout_ms": 30000,
    "post_submit_wait_ms": 2000,
    "selectors_file": None,
    "records_dir": None,
    "text_generation": {
        "provider": None,
        "model": "gpt-4o-mini",
        "api_key_env": "OPENAI_API_KEY",
    },
}


# --- Data model ---


@dataclass
class Preferences:
    remote: bool = False
    min_salary: int = 0


@dataclass
class Profile:
    """Candidate data used to fill application forms."""

    name: str
    email: str
    phone: str = ""
    title: str = ""
    experience: str = ""
    skills: list[str] = field(default_factory=list)
    resume_text: str = ""
    resume_path: str | None = None
    preferences: Preferences = field(default_factory=Preferences)
    portfolio: dict[str, str] = field(default_factory=dict)


@dataclass
class Job:
    """A single job posting."""

    id: str
    title: str
    company: str
    location: str = ""
    salary: str = ""
    description: str = ""
    tags: list[str] = field(default_factory=list)
    application_url: str | None = None
    posted_at: str = ""
    source: str = ""


@dataclass
class ApplicationRecord:
    """Persisted history entry. Owned by the caller; the agent only sets ``status``."""

    id: str
    job_id: str
    job_title: str = ""
    company: str = ""
    status: str = "pending"
    match_score: int = 0
    match_reason: str | None = None
    cover_letter: str | None = None
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True)
class LogEntry:
    timestamp: float
    message: str
    severity: str = "info"


class ApplicationOutcome:
    """Result of one automation attempt.

    Mutated only by appending log entries and by a single terminal transition
    through :meth:`finish`.
    """

    def __init__(self, application: ApplicationRecord | None = None, echo: bool = False):
        self.status = "processing"
        self.application = application
        self.error_kind: str | None = None
        self.echo = echo
        self._logs: list[LogEntry] = []

    @property
    def logs(self) -> tuple[LogEntry, ...]:
        return tuple(self._logs)

    @property
    def is_terminal(self) -> bool:
        return self.status in AGENT_TERMINAL_STATES

    def log(self, message: str, severity: str = "info") -> LogEntry:
        if severity not in SEVERITIES:
            raise ValueError(f"Unknown log severity: {severity!r}")
        entry = LogEntry(timestamp=time.time(), message=message, severity=severity)
        self._logs.append(entry)
        if self.echo:
            print(f"  [{severity}] {message}")
        return entry

    def finish(self, status: str, record_status: str | None = None,
               error_kind: str | None = None) -> "ApplicationOutcome":
        """Move to a terminal state, optionally writing ``record_status`` onto the record."""
        if self.is_terminal:
            raise RuntimeError(f"Outcome already terminal ({self.status})")
        if status not in AGENT_TERMINAL_STATES:
            raise ValueError(f"Not a terminal agent state: {status!r}")
        self.status = status
        self.error_kind = error_kind
        if record_status and self.application is not None:
            self.application.status = record_status
        return self


# --- Parsing helpers ---


_SALARY_RE = re.compile(r"(\d[\d,]*(?:\.\d+)?)\s*([kK])?")
_YEARS_RE = re.compile(r"\d+")


def parse_salary_floor(salary: str | None) -> int | None:
    """Lower bound of a salary string: "$80k - $110k" -> 80000, "$120,000+" -> 120000."""
    if not salary:
        return None
    m = _SALARY_RE.search(salary)
    if not m:
        return None
    value = float(m.group(1).replace(",", ""))
    if m.group(2):
        value *= 1000
    return int(value)


def parse_experience_years(experience) -> int:
    """Leading integer of an experience string ("3-5 years" -> 3); 0 when absent."""
    if isinstance(experience, (int, float)):
        return int(experience)
    m = _YEARS_RE.search(str(experience or ""))
    return int(m.group(0)) if m else 0


# --- Safe YAML field mutation helpers ---


def update_yaml_field(
    content: str,
    field: str,
    new_value: str,
    *,
    nested: bool = False,
) -> str:
    """Replace a scalar YAML field's value in raw text with verification.

    Uses targeted regex to preserve file formatting (comments, key order,
    quoting style) while validating the result is still parseable YAML.

    Raises:
        ValueError: If the field is not found or the result is invalid YAML.
    """
    if nested:
        pattern = rf'^([ \t]+{re.escape(field)}:[ \t]+).*$'
    else:
        pattern = rf'^({re.escape(field)}:[ \t]+).*$'

    if not re.search(pattern, content, re.MULTILINE):
        raise ValueError(f"Field '{field}' not found in YAML (nested={nested})")

    new_content = re.sub(
        pattern,
        lambda m: m.group(1) + new_value,
        content,
        count=1,
        flags=re.MULTILINE,
    )

    try:
        yaml.safe_load(new_content)
    except yaml.YAMLError as e:
        raise ValueError(
            f"YAML became invalid after updating '{field}' to '{new_value}': {e}"
        )

    return new_content


# --- Config / profile / job loading ---


def _deep_merge(base: dict, override: dict) -> dict:
    result = copy.deepcopy(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_config(path: Path | None = None) -> dict:
    """Load agent config YAML merged over DEFAULT_CONFIG. Missing file -> defaults."""
    config_path = Path(path) if path else CONFIG_PATH
    if not config_path.exists():
        return copy.deepcopy(DEFAULT_CONFIG)
    data = yaml.safe_load(config_path.read_text())
    if data is None:
        return copy.deepcopy(DEFAULT_CONFIG)
    if not isinstance(data, dict):
        raise ValueError(f"Config file is not a YAML mapping: {config_path}")
    return _deep_merge(DEFAULT_CONFIG, data)


def profile_from_dict(data: dict) -> Profile:
    for key in ("name", "email"):
        if not data.get(key):
            raise ValueError(f"Profile is missing required field '{key}'")
    prefs = data.get("preferences") or {}
    return Profile(
        name=str(data["name"]),
        email=str(data["email"]),
        phone=str(data.get("phone") or ""),
        title=str(data.get("title") or ""),
        experience=str(data.get("experience") or ""),
        skills=[str(s) for s in data.get("skills") or []],
        resume_text=str(data.get("resume_text") or ""),
        resume_path=data.get("resume_path"),
        preferences=Preferences(
            remote=bool(prefs.get("remote", False)),
            min_salary=int(prefs.get("min_salary") or 0),
        ),
        portfolio=dict(data.get("portfolio") or {}),
    )


def job_from_dict(data: dict) -> Job:
    if not data.get("id") or not data.get("title"):
        raise ValueError(f"Job entry needs 'id' and 'title': {data!r}")
    return Job(
        id=str(data["id"]),
        title=str(data["title"]),
        company=str(data.get("company") or ""),
        location=str(data.get("location") or ""),
        salary=str(data.get("salary") or ""),
        description=str(data.get("description") or ""),
        tags=[str(t) for t in data.get("tags") or []],
        application_url=data.get("application_url") or None,
        posted_at=str(data.get("posted_at") or ""),
        source=str(data.get("source") or ""),
    )


def load_profile(path: Path) -> Profile:
    data = yaml.safe_load(Path(path).read_text())
    if not isinstance(data, dict):
        raise ValueError(f"Profile file is not a YAML mapping: {path}")
    return profile_from_dict(data)


def load_jobs(path: Path) -> list[Job]:
    """Load jobs from a YAML list (or a mapping with a top-level ``jobs`` list)."""
    data = yaml.safe_load(Path(path).read_text())
    if isinstance(data, dict):
        data = data.get("jobs", [])
    if not isinstance(data, list):
        raise ValueError(f"Jobs file must contain a list: {path}")
    return [job_from_dict(entry) for entry in data if isinstance(entry, dict)]


def dump_jobs(jobs: list[Job]) -> str:
    return yaml.safe_dump({"jobs": [asdict(j) for j in jobs]}, sort_keys=False)


# --- Application records ---


def save_record(record: ApplicationRecord, records_dir: Path | None = None) -> Path:
    """Write a record as <records_dir>/<id>.yaml and return its path."""
    target_dir = Path(records_dir) if records_dir else RECORDS_DIR
    target_dir.mkdir(parents=True, exist_ok=True)
    filepath = target_dir / f"{record.id}.yaml"
    filepath.write_text(yaml.safe_dump(asdict(record), sort_keys=False))
    return filepath


def can_advance(current_status: str, target_status: str) -> bool:
    """Check if a transition is valid."""
    return target_status in VALID_TRANSITIONS.get(current_status, set())


def advance_status(record: ApplicationRecord, status: str) -> ApplicationRecord:
    """Move an in-memory record to ``status``.

    Raises:
        ValueError: If ``status`` is unknown or not reachable from the current one.
    """
    if status not in VALID_STATUSES:
        raise ValueError(f"Unknown record status: {status!r}")
    if not can_advance(record.status, status):
        raise ValueError(f"Invalid status transition {record.status} -> {status} ({record.id})")
    record.status = status
    return record


def write_record_status(filepath: Path, status: str) -> None:
    """Write a new status into an existing record file, preserving its layout.

    The status already on disk must be able to advance to ``status``.
    """
    if status not in VALID_STATUSES:
        raise ValueError(f"Unknown record status: {status!r}")
    content = Path(filepath).read_text()
    current = (yaml.safe_load(content) or {}).get("status")
    if not can_advance(current, status):
        raise ValueError(f"Invalid status transition {current} -> {status} ({filepath})")
    Path(filepath).write_text(update_yaml_field(content, "status", status))


def load_records(records_dir: Path | None = None) -> list[ApplicationRecord]:
    """Load every record in ``records_dir``, sorted by file name. Missing dir -> []."""
    target_dir = Path(records_dir) if records_dir else RECORDS_DIR
    records = []
    if not target_dir.exists():
        return records
    for filepath in sorted(target_dir.glob("*.yaml")):
        data = yaml.safe_load(filepath.read_text())
        if isinstance(data, dict) and data.get("id"):
            records.append(ApplicationRecord(**data))
    return records
