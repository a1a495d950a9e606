"""Tests for scripts/automation_agent.py"""

import asyncio
import itertools
import random
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "scripts"))

from automation_agent import AutomationAgent
from browser_session import BrowserSession, SessionError
from fake_browser import FakeElement, FakePage, FakePlaywright
from pipeline_lib import ApplicationRecord, Job, Profile

PROFILE = Profile(name="Ada Lovelace", email="ada@example.com", phone="555-0100")
JOB = Job(id="111", title="Platform Engineer", company="Acme",
          application_url="https://www.linkedin.com/jobs/view/111")

EASY_APPLY = 'button:has-text("Easy Apply")'
LINKEDIN_SUBMIT = 'button:has-text("Submit application")'


async def _no_sleep(seconds):
    return None


def _record(status="applying"):
    return ApplicationRecord(id="app-1", job_id=JOB.id, status=status)


def _demo_agent(seed=0, rate=0.9):
    return AutomationAgent(demo_mode=True, session=BrowserSession(playwright_factory=FakePlaywright()),
                           rng=random.Random(seed), demo_success_rate=rate, sleep=_no_sleep)


def _live_agent(*pages):
    fake = FakePlaywright(pages=pages)
    agent = AutomationAgent(demo_mode=False, session=BrowserSession(playwright_factory=fake))
    return agent, fake


def _submit(agent, application, profile=PROFILE, job=JOB):
    return asyncio.run(agent.submit_application(application, profile, job))


# --- Input validation ---


def test_missing_inputs_always_terminal():
    """Every combination of missing inputs yields a logged error outcome."""
    options = [(_record(), None), (PROFILE, None), (JOB, None)]
    for application, profile, job in itertools.product(*options):
        if application is not None and profile is not None and job is not None:
            continue
        outcome = _submit(_demo_agent(), application, profile, job)
        assert outcome.status == "error"
        assert outcome.error_kind == "validation"
        assert outcome.logs[-1].severity == "error"
        assert "Application, profile, and job data required" in outcome.logs[-1].message
        if application is not None:
            assert application.status == "applying"


def test_missing_url_fails_record():
    job = Job(id="2", title="Data Engineer", company="Acme")
    record = _record()
    outcome = _submit(_demo_agent(), record, job=job)
    assert outcome.status == "error"
    assert record.status == "failed"
    assert outcome.logs[-1].message == "No application URL provided for Data Engineer"
    assert outcome.logs[-1].severity == "error"


# --- Demo mode ---


def test_demo_success_logs_once():
    agent = _demo_agent(rate=1.0)
    record = _record()
    outcome = _submit(agent, record)
    assert outcome.status == "completed"
    assert record.status == "submitted"
    assert agent.state == "completed"
    successes = [e for e in outcome.logs if e.severity == "success"]
    assert len(successes) == 1
    assert successes[0].message == "Demo: Successfully submitted application for Platform Engineer"
    assert outcome.logs[0].message == "Starting web automation for Platform Engineer at Acme"


def test_demo_failure():
    record = _record()
    outcome = _submit(_demo_agent(rate=0.0), record)
    assert outcome.status == "error"
    assert outcome.error_kind == "simulated"
    assert record.status == "failed"
    assert outcome.logs[-1].message.endswith("(simulated failure)")


def test_demo_never_touches_browser():
    fake = FakePlaywright()
    agent = AutomationAgent(demo_mode=True, session=BrowserSession(playwright_factory=fake),
                            rng=random.Random(1), sleep=_no_sleep)
    _submit(agent, _record())
    assert fake.chromium.launches == 0


def test_demo_waits_configured_delay():
    delays = []

    async def record_sleep(seconds):
        delays.append(seconds)

    agent = AutomationAgent(demo_mode=True, session=BrowserSession(playwright_factory=FakePlaywright()),
                            rng=random.Random(1), demo_delay_seconds=2.0, sleep=record_sleep)
    _submit(agent, _record())
    assert delays == [2.0]


def test_demo_distribution():
    agent = _demo_agent(seed=1234, rate=0.9)

    async def scenario():
        results = []
        for i in range(2000):
            outcome = await agent.submit_application(_record(), PROFILE, JOB)
            results.append(outcome.status == "completed")
        return results

    results = asyncio.run(scenario())
    rate = sum(results) / len(results)
    assert abs(rate - 0.9) <= 0.03


def test_demo_seeded_runs_reproducible():
    def statuses(seed):
        agent = _demo_agent(seed=seed, rate=0.5)
        return [_submit(agent, _record()).status for _ in range(20)]

    assert statuses(7) == statuses(7)


# --- Live mode ---


def _linkedin_page(**extra):
    controls = {EASY_APPLY: [FakeElement(tag="button")], LINKEDIN_SUBMIT: [FakeElement(tag="button")]}
    controls.update(extra)
    return FakePage(controls=controls, fields=[FakeElement(type="email", name="email")])


def test_live_success_submits_and_closes_page():
    page = _linkedin_page()
    agent, fake = _live_agent(page)
    record = _record()
    outcome = _submit(agent, record)

    assert outcome.status == "completed"
    assert record.status == "submitted"
    assert page.closed
    assert page.fields[0].value == "ada@example.com"
    assert "Detected platform: linkedin" in [e.message for e in outcome.logs]
    assert fake.chromium.launches == 1


def test_live_missing_control_is_error():
    page = FakePage(controls={LINKEDIN_SUBMIT: [FakeElement(tag="button")]})
    agent, _ = _live_agent(page)
    record = _record()
    outcome = _submit(agent, record)

    assert outcome.status == "error"
    assert outcome.error_kind == "control_not_found"
    assert record.status == "failed"
    assert page.closed


def test_live_browser_exception_is_caught():
    page = FakePage(goto_error=RuntimeError("net::ERR_CONNECTION_RESET"))
    agent, _ = _live_agent(page)
    record = _record()
    outcome = _submit(agent, record)

    assert outcome.status == "error"
    assert outcome.error_kind == "browser"
    assert record.status == "failed"
    assert outcome.logs[-1].message == "Web automation failed: net::ERR_CONNECTION_RESET"
    assert outcome.logs[-1].severity == "error"
    assert page.closed


def test_live_reuses_one_browser_across_jobs():
    agent, fake = _live_agent(_linkedin_page(), _linkedin_page())

    async def scenario():
        a = await agent.submit_application(_record(), PROFILE, JOB)
        b = await agent.submit_application(_record(), PROFILE, JOB)
        return a, b

    a, b = asyncio.run(scenario())
    assert a.status == b.status == "completed"
    assert fake.chromium.launches == 1
    assert len(fake.context.opened) == 2


def test_live_passes_cover_letter_to_form():
    letter_box = FakeElement(tag="textarea", label="Cover letter")
    page = FakePage(
        controls={EASY_APPLY: [FakeElement(tag="button")], LINKEDIN_SUBMIT: [FakeElement(tag="button")]},
        fields=[letter_box],
    )
    agent, _ = _live_agent(page)
    record = _record()
    record.cover_letter = "Dear Acme team,"
    _submit(agent, record)
    assert letter_box.value == "Dear Acme team,"


def test_session_misuse_propagates():
    agent, _ = _live_agent(_linkedin_page())

    async def scenario():
        await agent.close()
        await agent.submit_application(_record(), PROFILE, JOB)

    with pytest.raises(SessionError):
        asyncio.run(scenario())


def test_close_is_repeatable():
    agent, fake = _live_agent(_linkedin_page())

    async def scenario():
        await agent.submit_application(_record(), PROFILE, JOB)
        await agent.close()
        await agent.close()

    asyncio.run(scenario())
    assert fake.stopped


def test_echo_prints_log_lines(capsys):
    agent = AutomationAgent(demo_mode=True, session=BrowserSession(playwright_factory=FakePlaywright()),
                            rng=random.Random(0), demo_success_rate=1.0, sleep=_no_sleep, echo=True)
    _submit(agent, _record())
    out = capsys.readouterr().out
    assert "[info] Starting web automation for Platform Engineer at Acme" in out
    assert "[success] Demo: Successfully submitted application for Platform Engineer" in out


def test_process_alias():
    agent = _demo_agent(rate=1.0)
    outcome = asyncio.run(agent.process(_record(), PROFILE, JOB))
    assert outcome.status == "completed"
