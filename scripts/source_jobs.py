#!/usr/bin/env python3
"""Source job postings from public ATS board APIs.

Polls Greenhouse, Lever, and Ashby job board APIs for the companies listed in
the sources file, filters by title keywords, deduplicates, and writes a jobs
YAML file ready for score.py and browser_submit.py. Every returned job carries
an application URL.

Usage:
    python scripts/source_jobs.py --output jobs.yaml                # Fetch all configured boards
    python scripts/source_jobs.py --output jobs.yaml --limit 20      # Top 20 only
    python scripts/source_jobs.py --keywords "backend" "platform"    # Override title keywords
    python scripts/source_jobs.py --list-sources                     # Show configured companies
"""

import argparse
import html
import json
import re
import sys
from datetime import datetime, timezone
from pathlib import Path
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

import yaml

sys.path.insert(0, str(Path(__file__).resolve().parent))

from pipeline_lib import Job, dump_jobs

SOURCES_FILE = Path(__file__).resolve().parent / ".job-sources.yaml"

# Title keyword filters (case-insensitive)
TITLE_KEYWORDS = [
    "software engineer", "developer", "engineering",
    "frontend", "backend", "full stack", "fullstack",
    "platform engineer", "infrastructure",
    "ai engineer", "ml engineer", "data engineer",
]

TITLE_EXCLUDES = [
    "director", "vp", "head of", "manager",
    "intern", "co-op",
    "recruiter", "counsel",
]

# Request timeout in seconds
HTTP_TIMEOUT = 15

# URL templates for postings that arrive without an application URL.
APPLICATION_URL_TEMPLATES = {
    "linkedin": "https://www.linkedin.com/jobs/view/{job_id}",
    "indeed": "https://www.indeed.com/viewjob?jk={job_id}",
    "glassdoor": "https://www.glassdoor.com/job-listing/{job_id}",
    "remoteok": "https://remoteok.com/remote-jobs/{job_id}",
    "weworkremotely": "https://weworkremotely.com/remote-jobs/{job_id}",
    "greenhouse": "https://boards.greenhouse.io/{company}/jobs/{job_id}",
    "lever": "https://jobs.lever.co/{company}/{job_id}",
    "ashby": "https://jobs.ashbyhq.com/{company}/{job_id}",
}

_TAG_RE = re.compile(r"<[^>]+>")


def generate_application_url(source: str, job_id: str, company: str = "") -> str | None:
    """Build the public posting URL for ``source``; None for unknown sources."""
    template = APPLICATION_URL_TEMPLATES.get(source)
    if not template:
        return None
    return template.format(job_id=job_id, company=company)


def load_sources(path: Path | None = None) -> dict:
    """Load company lists (greenhouse/lever/ashby) from the sources YAML."""
    sources_path = Path(path) if path else SOURCES_FILE
    if not sources_path.exists():
        print(f"Sources file not found: {sources_path}", file=sys.stderr)
        print("Create it with greenhouse/lever/ashby company lists.", file=sys.stderr)
        sys.exit(1)
    data = yaml.safe_load(sources_path.read_text())
    return data or {}


def _http_get(url: str) -> bytes:
    """GET request with User-Agent header and timeout."""
    req = Request(url, headers={"User-Agent": "job-apply-agent/1.0"})
    with urlopen(req, timeout=HTTP_TIMEOUT) as resp:
        return resp.read()


def _plain_text(raw: str) -> str:
    return " ".join(_TAG_RE.sub(" ", html.unescape(raw or "")).split())


def fetch_greenhouse_jobs(board: str) -> list[Job]:
    """Fetch jobs from the Greenhouse public job board API."""
    url = f"https://boards-api.greenhouse.io/v1/boards/{board}/jobs?content=true"
    try:
        data = json.loads(_http_get(url))
    except (HTTPError, URLError, json.JSONDecodeError) as e:
        print(f"  [greenhouse/{board}] Error: {e}", file=sys.stderr)
        return []

    results = []
    for job in data.get("jobs", []):
        job_id = str(job.get("id", ""))
        raw_date = job.get("updated_at", "")
        results.append(Job(
            id=f"greenhouse-{board}-{job_id}",
            title=job.get("title", ""),
            company=board,
            location=(job.get("location") or {}).get("name", ""),
            description=_plain_text(job.get("content", "")),
            tags=[d.get("name", "") for d in job.get("departments", []) if d.get("name")],
            application_url=job.get("absolute_url") or generate_application_url("greenhouse", job_id, board),
            posted_at=raw_date[:10] if raw_date else "",
            source="greenhouse",
        ))
    return results


def fetch_lever_jobs(company: str) -> list[Job]:
    """Fetch jobs from the Lever public postings API."""
    url = f"https://api.lever.co/v0/postings/{company}?mode=json"
    try:
        jobs = json.loads(_http_get(url))
    except (HTTPError, URLError, json.JSONDecodeError) as e:
        print(f"  [lever/{company}] Error: {e}", file=sys.stderr)
        return []

    if not isinstance(jobs, list):
        return []

    results = []
    for job in jobs:
        job_id = job.get("id", "")
        created_ms = job.get("createdAt")
        if created_ms:
            posted_at = datetime.fromtimestamp(created_ms / 1000, tz=timezone.utc).date().isoformat()
        else:
            posted_at = ""
        categories = job.get("categories") or {}
        results.append(Job(
            id=f"lever-{company}-{job_id}",
            title=job.get("text", ""),
            company=company,
            location=categories.get("location", "") or "",
            description=job.get("descriptionPlain", "") or "",
            tags=[v for v in (categories.get("team"), categories.get("commitment")) if v],
            application_url=(job.get("applyUrl") or job.get("hostedUrl")
                             or generate_application_url("lever", job_id, company)),
            posted_at=posted_at,
            source="lever",
        ))
    return results


def fetch_ashby_jobs(company: str) -> list[Job]:
    """Fetch jobs from the Ashby public job board API."""
    url = f"https://api.ashbyhq.com/posting-api/job-board/{company}?includeCompensation=true"
    try:
        data = json.loads(_http_get(url))
    except (HTTPError, URLError, json.JSONDecodeError) as e:
        print(f"  [ashby/{company}] Error: {e}", file=sys.stderr)
        return []

    results = []
    for job in data.get("jobs", []):
        job_id = str(job.get("id", ""))
        raw_date = job.get("publishedAt") or job.get("publishedDate") or ""
        compensation = job.get("compensation") or {}
        location = job.get("location", "") or ""
        if job.get("isRemote") and "remote" not in location.lower():
            location = f"{location} (Remote)".strip()
        results.append(Job(
            id=f"ashby-{company}-{job_id}",
            title=job.get("title", ""),
            company=company,
            location=location,
            salary=compensation.get("compensationTierSummary", "") or "",
            description=job.get("descriptionPlain", "") or "",
            tags=[v for v in (job.get("department"), job.get("team")) if v],
            application_url=job.get("applyUrl") or generate_application_url("ashby", job_id, company),
            posted_at=raw_date[:10],
            source="ashby",
        ))
    return results


FETCHERS = {
    "greenhouse": fetch_greenhouse_jobs,
    "lever": fetch_lever_jobs,
    "ashby": fetch_ashby_jobs,
}


def filter_by_title(jobs: list[Job], keywords: list[str], excludes: list[str]) -> list[Job]:
    """Keep jobs whose title matches any keyword and no exclude."""
    keywords = [k.lower() for k in keywords]
    excludes = [e.lower() for e in excludes]
    matched = []
    for job in jobs:
        title_lower = job.title.lower()
        if any(exc in title_lower for exc in excludes):
            continue
        if not keywords or any(kw in title_lower for kw in keywords):
            matched.append(job)
    return matched


def deduplicate(jobs: list[Job]) -> list[Job]:
    """Drop repeated postings (same ID or same application URL), keeping the first."""
    seen = set()
    unique = []
    for job in jobs:
        keys = {job.id, job.application_url}
        if keys & seen:
            continue
        seen.update(k for k in keys if k)
        unique.append(job)
    return unique


def search_jobs(sources: dict, keywords: list[str] | None = None,
                excludes: list[str] | None = None, limit: int | None = None) -> list[Job]:
    """Query every configured board and return filtered, deduplicated jobs."""
    collected = []
    for portal, fetcher in FETCHERS.items():
        for company in sources.get(portal, []) or []:
            print(f"  Querying {portal}/{company}...")
            collected.extend(fetcher(company))
    jobs = filter_by_title(
        collected,
        TITLE_KEYWORDS if keywords is None else keywords,
        TITLE_EXCLUDES if excludes is None else excludes,
    )
    jobs = [j for j in deduplicate(jobs) if j.application_url]
    if limit:
        jobs = jobs[:limit]
    return jobs


def main():
    parser = argparse.ArgumentParser(description="Source jobs from public ATS board APIs")
    parser.add_argument("--sources", type=Path, help=f"Sources YAML (default: {SOURCES_FILE.name})")
    parser.add_argument("--keywords", nargs="*", help="Override title keywords")
    parser.add_argument("--limit", type=int, help="Maximum number of jobs to keep")
    parser.add_argument("--output", type=Path, help="Write jobs YAML here (default: stdout)")
    parser.add_argument("--list-sources", action="store_true", help="Show configured companies")
    args = parser.parse_args()

    sources = load_sources(args.sources)

    if args.list_sources:
        for portal in FETCHERS:
            companies = sources.get(portal, []) or []
            print(f"{portal} ({len(companies)}): {', '.join(companies) or '-'}")
        return

    jobs = search_jobs(sources, keywords=args.keywords, limit=args.limit)
    print(f"\nFound {len(jobs)} matching job(s).")

    text = dump_jobs(jobs)
    if args.output:
        args.output.write_text(text)
        print(f"Wrote {args.output}")
    else:
        print(text)


if __name__ == "__main__":
    main()
