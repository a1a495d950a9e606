#!/usr/bin/env python3
"""Batch runner: score, compose and submit job applications through the agent.

Processes the jobs file sequentially with one shared browser session. Each job
is fit-scored first; jobs below the match threshold are recorded as rejected
and never reach the browser. Qualified jobs get a cover letter and are handed
to the automation agent. Every attempt is persisted as an application record.

Runs in demo mode (no browser, simulated outcome) unless --live is given or
the config sets ``demo_mode: false``.

Usage:
    python scripts/browser_submit.py --profile profile.yaml --jobs jobs.yaml             # Demo run
    python scripts/browser_submit.py --profile profile.yaml --jobs jobs.yaml --live      # Real browser
    python scripts/browser_submit.py --profile profile.yaml --jobs jobs.yaml --target <id>
    python scripts/browser_submit.py --profile profile.yaml --jobs jobs.yaml --max 5
    python scripts/browser_submit.py --profile profile.yaml --jobs jobs.yaml --live --headed
    python scripts/browser_submit.py --history                                           # Past records by status
"""

import argparse
import asyncio
import random
import sys
import time
import uuid
from collections import deque
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent))

from automation_agent import AutomationAgent
from browser_session import BrowserSession
from compose import compose_cover_letter
from pipeline_lib import (
    STATUS_ORDER, ApplicationRecord, Job, Profile,
    advance_status, load_config, load_jobs, load_profile, load_records,
    save_record, write_record_status,
)
from score import qualify
from site_strategies import load_selector_overrides
from textgen import build_generator

HOUR_SECONDS = 3600.0

RESULT_ICONS = {
    "submitted": "+", "failed": "!", "rejected": "-", "pending": ".",
    "analyzing": "~", "matched": "~", "applying": "~",
}


class RateLimiter:
    """Sliding one-hour window over application attempts."""

    def __init__(self, per_hour: int, clock=time.monotonic, window: float = HOUR_SECONDS):
        self.per_hour = per_hour
        self.clock = clock
        self.window = window
        self._attempts = deque()

    def _prune(self) -> None:
        cutoff = self.clock() - self.window
        while self._attempts and self._attempts[0] <= cutoff:
            self._attempts.popleft()

    def remaining(self) -> int:
        self._prune()
        return max(0, self.per_hour - len(self._attempts))

    def allow(self) -> bool:
        return self.remaining() > 0

    def record(self) -> None:
        self._attempts.append(self.clock())


def new_record(job: Job) -> ApplicationRecord:
    return ApplicationRecord(
        id=f"app-{uuid.uuid4().hex[:12]}",
        job_id=job.id,
        job_title=job.title,
        company=job.company,
    )


def build_agent(config: dict, echo: bool = True, seed: int | None = None) -> AutomationAgent:
    """Construct the agent and its browser session from the merged config."""
    session = BrowserSession(headless=config["headless"])
    return AutomationAgent(
        demo_mode=config["demo_mode"],
        session=session,
        rng=random.Random(seed),
        demo_success_rate=config["demo_success_rate"],
        demo_delay_seconds=config["demo_delay_seconds"],
        selector_overrides=load_selector_overrides(config.get("selectors_file")),
        strategy_options={
            "step_timeout_ms": config["step_timeout_ms"],
            "navigation_timeout_ms": config["navigation_timeout_ms"],
            "post_submit_wait_ms": config["post_submit_wait_ms"],
        },
        echo=echo,
    )


async def process_job(agent: AutomationAgent, profile: Profile, job: Job,
                      threshold: int, generator=None, records_dir: Path | None = None) -> str:
    """Score, compose and submit one job. Returns the record's final status.

    Every status the record passes through is written to disk, so an
    interrupted run leaves the record at the step it reached.
    """
    record = new_record(job)
    filepath = save_record(advance_status(record, "analyzing"), records_dir)

    passes, value, reason = qualify(profile, job, threshold)
    record.match_score = value
    record.match_reason = reason
    if not passes:
        save_record(advance_status(record, "rejected"), records_dir)
        print(f"  Skipped: {reason}")
        return record.status

    save_record(advance_status(record, "matched"), records_dir)
    print(f"  {reason}")
    letter, source = compose_cover_letter(profile, job, generator)
    record.cover_letter = letter
    print(f"  Cover letter: {source} ({len(letter)} chars)")

    save_record(advance_status(record, "applying"), records_dir)

    outcome = await agent.submit_application(record, profile, job)
    if record.status == "applying":
        advance_status(record, "failed")
    write_record_status(filepath, record.status)
    if outcome.error_kind:
        print(f"  Outcome: {outcome.status} ({outcome.error_kind})")
    else:
        print(f"  Outcome: {outcome.status}")
    return record.status


async def run_batch(agent: AutomationAgent, profile: Profile, jobs: list[Job], config: dict,
                    generator=None, limiter: RateLimiter | None = None,
                    sleep=asyncio.sleep, records_dir: Path | None = None) -> list[tuple[str, str]]:
    """Process ``jobs`` one at a time. Returns (job_id, status) per job in input order."""
    limiter = limiter or RateLimiter(config["applications_per_hour"])
    delay = config["delay_between_jobs"]
    records_dir = records_dir or config.get("records_dir")
    results = []

    for i, job in enumerate(jobs):
        if not limiter.allow():
            remaining = jobs[i:]
            print(f"\nHourly budget of {limiter.per_hour} application(s) reached; "
                  f"leaving {len(remaining)} job(s) pending.")
            for pending_job in remaining:
                save_record(new_record(pending_job), records_dir)
                results.append((pending_job.id, "pending"))
            break

        print(f"\n{'=' * 60}")
        print(f"PROCESSING: {job.title} @ {job.company} [{job.id}]")
        print(f"{'=' * 60}")

        status = await process_job(agent, profile, job, config["match_threshold"],
                                   generator=generator, records_dir=records_dir)
        results.append((job.id, status))

        if status in ("submitted", "failed"):
            limiter.record()
            if i < len(jobs) - 1 and delay:
                print(f"\n  Waiting {delay}s before next job...")
                await sleep(delay)

    return results


def print_summary(results: list[tuple[str, str]]) -> None:
    print(f"\n{'=' * 60}")
    print("BATCH SUMMARY:")
    print(f"{'=' * 60}")
    counts = {}
    for job_id, status in results:
        print(f"  [{RESULT_ICONS.get(status, '?')}] {job_id}: {status}")
        counts[status] = counts.get(status, 0) + 1
    print(
        f"\n  {counts.get('submitted', 0)} submitted, {counts.get('failed', 0)} failed, "
        f"{counts.get('rejected', 0)} rejected, {counts.get('pending', 0)} pending"
    )


def print_history(records: list[ApplicationRecord]) -> None:
    """Print stored records grouped by status, in lifecycle order."""
    print(f"APPLICATION HISTORY ({len(records)} record(s))")
    print(f"{'=' * 60}")
    if not records:
        print("  No application records found.")
        return
    for status in STATUS_ORDER:
        group = sorted((r for r in records if r.status == status), key=lambda r: r.timestamp)
        if not group:
            continue
        print(f"\n{status.upper()} ({len(group)}):")
        for r in group:
            print(f"  [{RESULT_ICONS.get(status, '?')}] {r.job_id}: {r.job_title} @ {r.company} "
                  f"(score {r.match_score})")


def apply_cli_overrides(config: dict, args) -> dict:
    if args.live:
        config["demo_mode"] = False
    elif args.demo:
        config["demo_mode"] = True
    if args.headed:
        config["headless"] = False
    if args.threshold is not None:
        config["match_threshold"] = args.threshold
    if args.records_dir:
        config["records_dir"] = str(args.records_dir)
    return config


def select_jobs(jobs: list[Job], target: str | None = None, limit: int | None = None) -> list[Job]:
    if target:
        jobs = [j for j in jobs if j.id == target]
    if limit:
        jobs = jobs[:limit]
    return jobs


async def _run(args) -> list[tuple[str, str]]:
    config = apply_cli_overrides(load_config(args.config), args)
    profile = load_profile(args.profile)
    jobs = select_jobs(load_jobs(args.jobs), args.target, args.max)
    if not jobs:
        target_note = f" with id '{args.target}'" if args.target else ""
        print(f"Error: No jobs found{target_note}.", file=sys.stderr)
        sys.exit(1)

    mode = "demo" if config["demo_mode"] else ("headless" if config["headless"] else "headed")
    print(f"Mode: {mode} | Jobs: {len(jobs)} | Threshold: {config['match_threshold']}")

    generator = build_generator(config["text_generation"])
    agent = build_agent(config, seed=args.seed)
    try:
        return await run_batch(agent, profile, jobs, config, generator=generator)
    finally:
        await agent.close()


def main():
    parser = argparse.ArgumentParser(
        description="Score, compose and submit job applications"
    )
    parser.add_argument("--profile", type=Path, help="Profile YAML file")
    parser.add_argument("--jobs", type=Path, help="Jobs YAML file")
    parser.add_argument("--history", action="store_true",
                        help="List stored application records by status and exit")
    parser.add_argument("--config", type=Path, help="Agent config YAML")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--demo", action="store_true", help="Simulate submissions (no browser)")
    mode.add_argument("--live", action="store_true", help="Drive a real browser")
    parser.add_argument("--headed", action="store_true", help="Show the browser window (with --live)")
    parser.add_argument("--threshold", type=int, help="Override match threshold")
    parser.add_argument("--target", help="Only process this job ID")
    parser.add_argument("--max", type=int, help="Process at most N jobs")
    parser.add_argument("--records-dir", type=Path, help="Where to write application records")
    parser.add_argument("--seed", type=int, help="Seed for demo-mode outcomes")
    args = parser.parse_args()

    if args.history:
        config = load_config(args.config)
        print_history(load_records(args.records_dir or config.get("records_dir")))
        return
    if not args.profile or not args.jobs:
        parser.error("--profile and --jobs are required unless --history is given")

    results = asyncio.run(_run(args))
    print_summary(results)


if __name__ == "__main__":
    main()
