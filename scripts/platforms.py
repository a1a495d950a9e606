"""Classify application URLs into the site families the agent knows how to drive."""

from urllib.parse import urlparse

LINKEDIN = "linkedin"
INDEED = "indeed"
COMPANY = "company"

PLATFORMS = (LINKEDIN, INDEED, COMPANY)

# Host substrings per platform, checked in order. Anything else is a company site.
PLATFORM_HOSTS = [
    (LINKEDIN, ("linkedin.com",)),
    (INDEED, ("indeed.com",)),
]

# Used when a job has no application URL of its own.
FALLBACK_URLS = {
    LINKEDIN: "https://www.linkedin.com/jobs/view/{job_id}",
    INDEED: "https://www.indeed.com/viewjob?jk={job_id}",
}


def classify(url: str | None) -> str:
    """Return linkedin, indeed or company for ``url``. Pure string matching, no network."""
    if not url:
        return COMPANY
    host = urlparse(url if "//" in url else f"//{url}").netloc.lower()
    if not host:
        host = url.lower()
    for platform, needles in PLATFORM_HOSTS:
        if any(n in host for n in needles):
            return platform
    return COMPANY


def fallback_url(platform: str, job_id: str) -> str | None:
    template = FALLBACK_URLS.get(platform)
    if not template:
        return None
    return template.format(job_id=job_id)
