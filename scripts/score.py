#!/usr/bin/env python3
"""Score job postings against a candidate profile.

Deterministic 0-100 fit score used to gate which jobs reach the automation
agent. Starts at 50 and adds weighted bonuses for skill overlap, seniority
fit, remote preference and salary floor, clamped to [0, 100].

Usage:
    python scripts/score.py --profile profile.yaml --jobs jobs.yaml
    python scripts/score.py --profile profile.yaml --jobs jobs.yaml --explain
    python scripts/score.py --profile profile.yaml --jobs jobs.yaml --threshold 80
"""

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent))

from pipeline_lib import (
    Job, Profile,
    load_jobs, load_profile,
    parse_experience_years, parse_salary_floor,
)

BASE_SCORE = 50
SKILL_POINTS = 10
SENIORITY_BONUS = 15
REMOTE_BONUS = 10
SALARY_BONUS = 10

SENIOR_MIN_YEARS = 3

# Default minimum score for the agent to attempt an application.
MATCH_THRESHOLD = 70


def matching_skills(profile: Profile, job: Job) -> list[str]:
    """Profile skills that substring-match (either direction) at least one job tag."""
    tags = [t.lower().strip() for t in job.tags if t and t.strip()]
    matched = []
    for skill in profile.skills:
        s = (skill or "").lower().strip()
        if not s:
            continue
        if any(s in tag or tag in s for tag in tags):
            matched.append(skill)
    return matched


def seniority_fit(profile: Profile, job: Job) -> str | None:
    """'senior' or 'junior' when the title level fits the profile's years, else None."""
    title = job.title.lower()
    years = parse_experience_years(profile.experience)
    if "senior" in title and years >= SENIOR_MIN_YEARS:
        return "senior"
    if "junior" in title and years < SENIOR_MIN_YEARS:
        return "junior"
    return None


def score(profile: Profile, job: Job, explain: bool = False) -> int | tuple[int, list[str]]:
    """Fit score in [0, 100]. With ``explain`` returns (score, reasons)."""
    reasons = [f"base {BASE_SCORE}"]
    total = BASE_SCORE

    skills = matching_skills(profile, job)
    if skills:
        total += SKILL_POINTS * len(skills)
        reasons.append(f"+{SKILL_POINTS * len(skills)} skills ({', '.join(skills)})")

    level = seniority_fit(profile, job)
    if level:
        total += SENIORITY_BONUS
        reasons.append(f"+{SENIORITY_BONUS} {level} title fits experience")

    if profile.preferences.remote and "remote" in job.location.lower():
        total += REMOTE_BONUS
        reasons.append(f"+{REMOTE_BONUS} remote")

    floor = parse_salary_floor(job.salary)
    if floor is not None and floor >= profile.preferences.min_salary:
        total += SALARY_BONUS
        reasons.append(f"+{SALARY_BONUS} salary floor ${floor:,} >= ${profile.preferences.min_salary:,}")

    result = max(0, min(100, total))
    if explain:
        return result, reasons
    return result


def qualify(profile: Profile, job: Job, threshold: int = MATCH_THRESHOLD) -> tuple[bool, int, str]:
    """Return (passes, score, reason) for the match gate."""
    value, reasons = score(profile, job, explain=True)
    reason = "; ".join(reasons)
    if value < threshold:
        return False, value, f"Low match score ({value}% < {threshold}%): {reason}"
    return True, value, f"Match score {value}%: {reason}"


def rank_jobs(profile: Profile, jobs: list[Job]) -> list[tuple[Job, int]]:
    """Jobs paired with their score, best first; ties keep input order."""
    scored = [(job, score(profile, job)) for job in jobs]
    return sorted(scored, key=lambda pair: -pair[1])


def main():
    parser = argparse.ArgumentParser(description="Score jobs against a candidate profile")
    parser.add_argument("--profile", required=True, type=Path, help="Profile YAML file")
    parser.add_argument("--jobs", required=True, type=Path, help="Jobs YAML file")
    parser.add_argument("--threshold", type=int, default=MATCH_THRESHOLD,
                        help=f"Match threshold (default: {MATCH_THRESHOLD})")
    parser.add_argument("--explain", action="store_true", help="Show score breakdown")
    args = parser.parse_args()

    profile = load_profile(args.profile)
    jobs = load_jobs(args.jobs)
    if not jobs:
        print("No jobs found.")
        sys.exit(1)

    print(f"{'SCORE':>5}  {'GATE':<4}  JOB")
    for job, value in rank_jobs(profile, jobs):
        gate = "yes" if value >= args.threshold else "no"
        print(f"{value:>5}  {gate:<4}  {job.title} @ {job.company} [{job.id}]")
        if args.explain:
            _, reasons = score(profile, job, explain=True)
            for reason in reasons:
                print(f"{'':>13}{reason}")


if __name__ == "__main__":
    main()
