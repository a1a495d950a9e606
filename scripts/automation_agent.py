"""Automation agent: one application attempt from inputs to a terminal outcome.

States: idle -> processing -> completed | error. Input problems, missing
controls and browser failures all end in ``error`` with a log entry; only
session lifecycle misuse (a caller bug) is raised.

In demo mode no browser is touched: after a fixed delay a seeded random draw
decides success with probability ``demo_success_rate``.
"""

import asyncio
import random

from browser_session import BrowserSession, SessionError
from pipeline_lib import (
    ERROR_BROWSER, ERROR_CONTROL_NOT_FOUND, ERROR_SIMULATED, ERROR_VALIDATION,
    ApplicationOutcome, ApplicationRecord, Job, Profile,
)
from platforms import classify
from site_strategies import strategy_for

DEMO_SUCCESS_RATE = 0.9
DEMO_DELAY_SECONDS = 2.0


class AutomationAgent:
    """Submits applications one at a time through a shared browser session.

    A single instance is meant to be reused across many jobs; the caller is
    responsible for calling :meth:`close` when the queue is done.
    """

    def __init__(self, demo_mode=True, session=None, rng=None,
                 demo_success_rate=DEMO_SUCCESS_RATE, demo_delay_seconds=DEMO_DELAY_SECONDS,
                 sleep=asyncio.sleep, selector_overrides=None, strategy_options=None,
                 echo=False):
        self.demo_mode = demo_mode
        self.session = session if session is not None else BrowserSession()
        self.rng = rng if rng is not None else random.Random()
        self.demo_success_rate = demo_success_rate
        self.demo_delay_seconds = demo_delay_seconds
        self.sleep = sleep
        self.selector_overrides = selector_overrides or {}
        self.strategy_options = strategy_options or {}
        self.echo = echo
        self.state = "idle"

    async def submit_application(self, application: ApplicationRecord | None,
                                 profile: Profile | None, job: Job | None) -> ApplicationOutcome:
        """Run one attempt and return its outcome. Never raises for bad inputs or browser errors."""
        self.state = "processing"
        outcome = ApplicationOutcome(application=application, echo=self.echo)
        try:
            await self._run(outcome, application, profile, job)
        finally:
            self.state = outcome.status if outcome.is_terminal else "idle"
        return outcome

    async def _run(self, outcome, application, profile, job):
        missing = [name for name, value in
                   (("application", application), ("profile", profile), ("job", job))
                   if value is None]
        if missing:
            outcome.log(f"Application, profile, and job data required (missing: {', '.join(missing)})",
                        "error")
            outcome.finish("error", error_kind=ERROR_VALIDATION)
            return

        if not job.application_url:
            outcome.log(f"No application URL provided for {job.title}", "error")
            outcome.finish("error", record_status="failed", error_kind=ERROR_VALIDATION)
            return

        outcome.log(f"Starting web automation for {job.title} at {job.company}")

        if self.demo_mode:
            await self._run_demo(outcome, job)
        else:
            await self._run_live(outcome, application, profile, job)

    async def _run_demo(self, outcome, job):
        outcome.log(f"Demo mode: Simulating application submission to {job.application_url}")
        await self.sleep(self.demo_delay_seconds)
        if self.rng.random() < self.demo_success_rate:
            outcome.log(f"Demo: Successfully submitted application for {job.title}", "success")
            outcome.finish("completed", record_status="submitted")
        else:
            outcome.log(f"Demo: Failed to submit application for {job.title} (simulated failure)",
                        "error")
            outcome.finish("error", record_status="failed", error_kind=ERROR_SIMULATED)

    async def _run_live(self, outcome, application, profile, job):
        page = None
        try:
            await self.session.ensure_started()
            page = await self.session.new_page()

            platform = classify(job.application_url)
            outcome.log(f"Detected platform: {platform}")
            strategy = strategy_for(platform, self.selector_overrides, **self.strategy_options)

            submitted = await strategy.apply(page, profile, job, log=outcome.log,
                                             cover_letter=application.cover_letter)
            if submitted:
                outcome.log(f"Successfully submitted application for {job.title}", "success")
                outcome.finish("completed", record_status="submitted")
            else:
                outcome.log(f"Failed to submit application for {job.title}", "error")
                outcome.finish("error", record_status="failed", error_kind=ERROR_CONTROL_NOT_FOUND)
        except SessionError:
            raise
        except Exception as e:
            outcome.log(f"Web automation failed: {e}", "error")
            if not outcome.is_terminal:
                outcome.finish("error", record_status="failed", error_kind=ERROR_BROWSER)
        finally:
            if page is not None:
                try:
                    await page.close()
                except Exception as e:
                    outcome.log(f"Could not close page: {e}", "warning")

    async def process(self, application, profile, job) -> ApplicationOutcome:
        return await self.submit_application(application, profile, job)

    async def close(self) -> None:
        """Release the browser session. Caller-invoked; safe to repeat."""
        await self.session.close()
