#!/usr/bin/env python3
"""Compose a cover letter for a job before the agent submits it.

Uses the injected text generator when one is configured; otherwise, or when
generation fails, falls back to a template built from the profile.

Usage:
    python scripts/compose.py --profile profile.yaml --jobs jobs.yaml --target <job-id>
"""

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent))

from pipeline_lib import Job, Profile, load_config, load_jobs, load_profile
from textgen import GenerationError, build_generator

# Generated letters longer than this are truncated at a paragraph boundary.
MAX_LETTER_CHARS = 4000


def build_cover_letter_prompt(profile: Profile, job: Job) -> str:
    lines = [
        f"Write a concise, professional cover letter for {profile.name} applying to "
        f"the {job.title} role at {job.company}.",
        "",
        f"Candidate title: {profile.title or 'n/a'}",
        f"Experience: {profile.experience or 'n/a'}",
        f"Skills: {', '.join(profile.skills) or 'n/a'}",
        "",
    ]
    if profile.resume_text:
        lines.extend(["Resume:", profile.resume_text, ""])
    lines.extend([
        "Job description:",
        job.description or "(none provided)",
        "",
        "- 3 short paragraphs, first person, no placeholders",
        "- Do not fabricate qualifications or experience",
        "- Output the letter body only",
    ])
    return "\n".join(lines)


def template_cover_letter(profile: Profile, job: Job) -> str:
    skills = ", ".join(profile.skills[:5]) or "a broad set of technical skills"
    experience = f" with {profile.experience} of experience" if profile.experience else ""
    return "\n\n".join([
        f"Dear {job.company or 'Hiring'} team,",
        f"I am writing to apply for the {job.title} position. As a "
        f"{profile.title or 'professional'}{experience}, I bring hands-on "
        f"expertise in {skills}.",
        f"I would welcome the chance to contribute to {job.company or 'your team'} "
        f"and to discuss how my background fits the role.",
        f"Sincerely,\n{profile.name}",
    ])


def _truncate(text: str, limit: int = MAX_LETTER_CHARS) -> str:
    if len(text) <= limit:
        return text
    cut = text.rfind("\n\n", 0, limit)
    return text[:cut if cut > 0 else limit].rstrip()


def compose_cover_letter(profile: Profile, job: Job, generator=None) -> tuple[str, str]:
    """Return (letter, source) where source is 'generated' or 'template'."""
    if generator is not None:
        try:
            letter = generator.generate(build_cover_letter_prompt(profile, job))
            return _truncate(letter), "generated"
        except GenerationError as e:
            print(f"  WARNING: {e}; using template cover letter")
    return template_cover_letter(profile, job), "template"


def main():
    parser = argparse.ArgumentParser(description="Compose a cover letter for a job")
    parser.add_argument("--profile", required=True, type=Path, help="Profile YAML file")
    parser.add_argument("--jobs", required=True, type=Path, help="Jobs YAML file")
    parser.add_argument("--target", required=True, help="Job ID")
    parser.add_argument("--config", type=Path, help="Agent config YAML")
    args = parser.parse_args()

    config = load_config(args.config)
    profile = load_profile(args.profile)
    job = next((j for j in load_jobs(args.jobs) if j.id == args.target), None)
    if job is None:
        print(f"Error: No job found with id '{args.target}'", file=sys.stderr)
        sys.exit(1)

    letter, source = compose_cover_letter(profile, job, build_generator(config["text_generation"]))
    print(f"# Cover letter ({source}): {job.title} @ {job.company}\n")
    print(letter)


if __name__ == "__main__":
    main()
