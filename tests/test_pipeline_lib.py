"""Tests for scripts/pipeline_lib.py"""

import sys
from pathlib import Path

import pytest
import yaml

sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "scripts"))

from pipeline_lib import (
    DEFAULT_CONFIG, STATUS_ORDER, VALID_STATUSES, VALID_TRANSITIONS,
    ApplicationOutcome, ApplicationRecord, Job,
    advance_status, can_advance, dump_jobs, load_config, load_jobs, load_profile, load_records,
    parse_experience_years, parse_salary_floor,
    save_record, update_yaml_field, write_record_status,
)


# --- Constants ---


def test_status_order_complete():
    assert set(STATUS_ORDER) == VALID_STATUSES


def test_final_statuses_have_no_transitions():
    for status in ("rejected", "submitted", "failed"):
        assert VALID_TRANSITIONS[status] == set()


def test_transitions_reference_valid_statuses():
    for source, targets in VALID_TRANSITIONS.items():
        assert source in VALID_STATUSES
        assert targets <= VALID_STATUSES


# --- parse_salary_floor ---


def test_salary_floor_k_range():
    assert parse_salary_floor("$80k - $110k") == 80000


def test_salary_floor_full_number():
    assert parse_salary_floor("$120,000+") == 120000


def test_salary_floor_missing():
    assert parse_salary_floor("") is None
    assert parse_salary_floor(None) is None
    assert parse_salary_floor("Competitive") is None


# --- parse_experience_years ---


def test_experience_years_range():
    assert parse_experience_years("3-5 years") == 3


def test_experience_years_numeric():
    assert parse_experience_years(7) == 7


def test_experience_years_missing():
    assert parse_experience_years("") == 0
    assert parse_experience_years(None) == 0
    assert parse_experience_years("several") == 0


# --- ApplicationOutcome ---


def test_outcome_logs_are_immutable_tuple():
    outcome = ApplicationOutcome()
    outcome.log("hello")
    assert isinstance(outcome.logs, tuple)
    assert outcome.logs[0].message == "hello"
    assert outcome.logs[0].severity == "info"


def test_outcome_rejects_unknown_severity():
    outcome = ApplicationOutcome()
    with pytest.raises(ValueError):
        outcome.log("oops", "fatal")
    assert outcome.logs == ()


def test_outcome_echo_prints(capsys):
    outcome = ApplicationOutcome(echo=True)
    outcome.log("Filled email", "success")
    assert "[success] Filled email" in capsys.readouterr().out


def test_outcome_finish_sets_record_status():
    record = ApplicationRecord(id="a1", job_id="j1", status="applying")
    outcome = ApplicationOutcome(application=record)
    outcome.finish("completed", record_status="submitted")
    assert outcome.status == "completed"
    assert outcome.is_terminal
    assert record.status == "submitted"


def test_outcome_finish_only_once():
    outcome = ApplicationOutcome()
    outcome.finish("error", error_kind="validation")
    with pytest.raises(RuntimeError):
        outcome.finish("completed")
    assert outcome.status == "error"


def test_outcome_finish_requires_terminal_state():
    outcome = ApplicationOutcome()
    with pytest.raises(ValueError):
        outcome.finish("processing")


# --- update_yaml_field ---


def test_update_yaml_field_preserves_comments():
    content = "# record\nid: a1\nstatus: pending  # lifecycle\n"
    result = update_yaml_field(content, "status", "submitted")
    assert result.startswith("# record\n")
    assert yaml.safe_load(result)["status"] == "submitted"


def test_update_yaml_field_missing_field():
    with pytest.raises(ValueError):
        update_yaml_field("id: a1\n", "status", "failed")


# --- Config ---


def test_load_config_missing_file_returns_defaults(tmp_path):
    config = load_config(tmp_path / "absent.yaml")
    assert config == DEFAULT_CONFIG
    assert config is not DEFAULT_CONFIG


def test_load_config_deep_merges(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("demo_mode: false\ntext_generation:\n  provider: openai\n")
    config = load_config(path)
    assert config["demo_mode"] is False
    assert config["text_generation"]["provider"] == "openai"
    assert config["text_generation"]["model"] == DEFAULT_CONFIG["text_generation"]["model"]
    assert config["match_threshold"] == 70


def test_load_config_rejects_non_mapping(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("- just\n- a list\n")
    with pytest.raises(ValueError):
        load_config(path)


# --- Profile / jobs ---


def test_load_profile(tmp_path):
    path = tmp_path / "profile.yaml"
    path.write_text(yaml.safe_dump({
        "name": "Ada Lovelace",
        "email": "ada@example.com",
        "experience": "5 years",
        "skills": ["Python", "SQL"],
        "preferences": {"remote": True, "min_salary": 90000},
    }))
    profile = load_profile(path)
    assert profile.name == "Ada Lovelace"
    assert profile.skills == ["Python", "SQL"]
    assert profile.preferences.remote is True
    assert profile.preferences.min_salary == 90000
    assert profile.phone == ""


def test_load_profile_missing_required_key(tmp_path):
    path = tmp_path / "profile.yaml"
    path.write_text("name: Ada\n")
    with pytest.raises(ValueError, match="email"):
        load_profile(path)


def test_load_jobs_accepts_list_and_mapping(tmp_path):
    as_list = tmp_path / "list.yaml"
    as_list.write_text("- id: j1\n  title: Engineer\n  company: Acme\n")
    as_map = tmp_path / "map.yaml"
    as_map.write_text("jobs:\n  - id: j2\n    title: Developer\n")
    assert [j.id for j in load_jobs(as_list)] == ["j1"]
    jobs = load_jobs(as_map)
    assert jobs[0].id == "j2"
    assert jobs[0].application_url is None


def test_load_jobs_requires_id_and_title(tmp_path):
    path = tmp_path / "jobs.yaml"
    path.write_text("- company: Acme\n")
    with pytest.raises(ValueError):
        load_jobs(path)


def test_dump_jobs_round_trips_through_load(tmp_path):
    jobs = [Job(id="j1", title="Engineer", company="Acme", tags=["python"],
                application_url="https://acme.com/jobs/1")]
    path = tmp_path / "jobs.yaml"
    path.write_text(dump_jobs(jobs))
    assert load_jobs(path) == jobs


# --- Records ---


def test_save_and_load_record(tmp_path):
    record = ApplicationRecord(id="app-1", job_id="j1", job_title="Engineer",
                               match_score=80, match_reason="good")
    filepath = save_record(record, tmp_path)
    assert filepath == tmp_path / "app-1.yaml"
    loaded = load_records(tmp_path)
    assert loaded == [record]


def test_write_record_status(tmp_path):
    filepath = save_record(ApplicationRecord(id="app-1", job_id="j1", status="applying"), tmp_path)
    write_record_status(filepath, "submitted")
    assert yaml.safe_load(filepath.read_text())["status"] == "submitted"


def test_write_record_status_rejects_unknown(tmp_path):
    filepath = save_record(ApplicationRecord(id="app-1", job_id="j1"), tmp_path)
    with pytest.raises(ValueError):
        write_record_status(filepath, "staged")


def test_load_records_missing_dir(tmp_path):
    assert load_records(tmp_path / "nope") == []


def test_write_record_status_rejects_invalid_transition(tmp_path):
    filepath = save_record(ApplicationRecord(id="app-1", job_id="j1", status="analyzing"), tmp_path)
    with pytest.raises(ValueError, match="analyzing -> applying"):
        write_record_status(filepath, "applying")
    assert yaml.safe_load(filepath.read_text())["status"] == "analyzing"


def test_write_record_status_final_status_is_locked(tmp_path):
    filepath = save_record(ApplicationRecord(id="app-1", job_id="j1", status="submitted"), tmp_path)
    with pytest.raises(ValueError):
        write_record_status(filepath, "applying")


# --- Status transitions ---


def test_can_advance():
    assert can_advance("pending", "analyzing")
    assert can_advance("matched", "applying")
    assert not can_advance("analyzing", "applying")
    assert not can_advance("rejected", "matched")
    assert not can_advance("unknown", "pending")


def test_advance_status_walks_lifecycle():
    record = ApplicationRecord(id="a1", job_id="j1")
    for status in ("analyzing", "matched", "applying", "submitted"):
        assert advance_status(record, status) is record
    assert record.status == "submitted"


def test_advance_status_rejects_skipped_step():
    record = ApplicationRecord(id="a1", job_id="j1", status="analyzing")
    with pytest.raises(ValueError, match="analyzing -> submitted"):
        advance_status(record, "submitted")
    assert record.status == "analyzing"


def test_advance_status_rejects_unknown():
    record = ApplicationRecord(id="a1", job_id="j1")
    with pytest.raises(ValueError, match="Unknown record status"):
        advance_status(record, "staged")


def test_load_records_sorted_by_file_name(tmp_path):
    save_record(ApplicationRecord(id="app-b", job_id="j2"), tmp_path)
    save_record(ApplicationRecord(id="app-a", job_id="j1"), tmp_path)
    assert [r.id for r in load_records(tmp_path)] == ["app-a", "app-b"]
