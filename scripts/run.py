#!/usr/bin/env python3
"""Single-word command dispatcher for the auto-apply scripts.

Maps command words to script invocations against the default profile and
jobs files at the repository root (profile.yaml, jobs.yaml).

Usage:
    python scripts/run.py source
    python scripts/run.py explain
    python scripts/run.py submit greenhouse-acme-123
    python scripts/run.py --help
"""

import subprocess
import sys
from pathlib import Path

SCRIPTS_DIR = Path(__file__).resolve().parent
REPO_ROOT = SCRIPTS_DIR.parent

PROFILE = str(REPO_ROOT / "profile.yaml")
JOBS = str(REPO_ROOT / "jobs.yaml")
INPUTS = ["--profile", PROFILE, "--jobs", JOBS]

# --- No-argument commands ---
COMMANDS = {
    "source":    ("source_jobs.py", ["--output", JOBS],       "Fetch jobs from configured ATS boards into jobs.yaml"),
    "sources":   ("source_jobs.py", ["--list-sources"],       "Show configured ATS companies"),
    "score":     ("score.py", INPUTS,                         "Rank jobs by fit score"),
    "explain":   ("score.py", INPUTS + ["--explain"],         "Rank jobs with score breakdown"),
    "apply":     ("browser_submit.py", INPUTS + ["--demo"],   "Run the queue in demo mode (no browser)"),
    "applylive": ("browser_submit.py", INPUTS + ["--live"],   "Run the queue in a real headless browser"),
    "history":   ("browser_submit.py", ["--history"],       "List stored application records by status"),
}

# --- Parameterized commands (word + job ID) ---
PARAM_COMMANDS = {
    "compose": ("compose.py", INPUTS + ["--target"],               "Compose a cover letter for one job"),
    "submit":  ("browser_submit.py", INPUTS + ["--live", "--target"], "Submit one job in a real browser"),
    "demo":    ("browser_submit.py", INPUTS + ["--demo", "--target"], "Simulate submitting one job"),
}


def show_help():
    """Print all available commands."""
    print("Auto-Apply: Single-Word Commands")
    print("=" * 55)
    print()
    print("STANDALONE COMMANDS:")
    for cmd, (script, _, desc) in sorted(COMMANDS.items()):
        print(f"  {cmd:<14s} {desc}")
    print()
    print("PARAMETERIZED COMMANDS (word + job ID):")
    for cmd, (script, _, desc) in sorted(PARAM_COMMANDS.items()):
        print(f"  {cmd:<14s} {desc}")
    print()
    print("SESSION SEQUENCES:")
    print("  Source:  source -> explain")
    print("  Apply:   explain -> compose <id> -> demo <id> -> submit <id>")
    print("  Batch:   source -> apply -> applylive")
    print()
    print("Usage: python scripts/run.py <command> [job-id]")


def build_args(cmd: str, target: str | None = None) -> list[str]:
    """Resolve a command word (and optional job ID) to a subprocess argv."""
    if cmd in COMMANDS and target is None:
        script, args, _ = COMMANDS[cmd]
        return [sys.executable, str(SCRIPTS_DIR / script)] + list(args)
    if cmd in PARAM_COMMANDS and target is not None:
        script, args, _ = PARAM_COMMANDS[cmd]
        return [sys.executable, str(SCRIPTS_DIR / script)] + list(args) + [target]
    if cmd in PARAM_COMMANDS:
        print(f"Error: '{cmd}' requires a job ID.", file=sys.stderr)
        print(f"Usage: python scripts/run.py {cmd} <job-id>", file=sys.stderr)
        sys.exit(1)
    print(f"Unknown command: '{cmd}'", file=sys.stderr)
    print("Run 'python scripts/run.py --help' for available commands.", file=sys.stderr)
    sys.exit(1)


def run_command(cmd: str, target: str | None = None):
    """Execute a command."""
    result = subprocess.run(build_args(cmd, target))
    sys.exit(result.returncode)


def main():
    if len(sys.argv) < 2 or sys.argv[1] in ("--help", "-h", "help"):
        show_help()
        sys.exit(0)

    cmd = sys.argv[1].lower()
    target = sys.argv[2] if len(sys.argv) > 2 else None

    run_command(cmd, target)


if __name__ == "__main__":
    main()
