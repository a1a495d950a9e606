"""Per-platform procedures for reaching and filling an application form.

Every strategy runs the same ordered steps (navigate, open the form, fill
contact fields, upload the resume, answer free-text questions, submit); the
platforms differ only in their selector chains. Selector chains are ordered
first-match-wins lists and can be extended per platform from a YAML file.

A missing apply or submit control is a normal negative result (``False``);
navigation and browser failures propagate to the caller.
"""

from dataclasses import dataclass
from pathlib import Path

import yaml

from field_heuristics import (
    EMAIL, FREE_TEXT_QUESTION, FULL_NAME, PHONE, RESUME_FILE,
    answer_for, detect_role, is_cover_letter, profile_value,
    question_text, question_topic, should_fill,
)
from pipeline_lib import Job, Profile
from platforms import COMPANY, INDEED, LINKEDIN, fallback_url

FIELD_SELECTOR = "input, textarea"

# Delay between rescans of a selector chain while waiting for a control.
CONTROL_POLL_MS = 250

# Attributes used by field_heuristics.detect_role, read in the page.
DESCRIBE_FIELD_JS = """el => {
    let label = '';
    if (el.id) {
        const byFor = document.querySelector('label[for="' + el.id + '"]');
        if (byFor) label = byFor.textContent;
    }
    if (!label) {
        const wrapping = el.closest('label');
        if (wrapping) label = wrapping.textContent;
    }
    if (!label && el.parentElement) {
        const sibling = el.parentElement.querySelector('label');
        if (sibling) label = sibling.textContent;
    }
    return {
        tag: el.tagName.toLowerCase(),
        type: (el.getAttribute('type') || '').toLowerCase(),
        name: el.getAttribute('name') || '',
        id: el.id || '',
        placeholder: el.getAttribute('placeholder') || '',
        aria_label: el.getAttribute('aria-label') || '',
        label: (label || '').trim(),
    };
}"""

DEFAULT_SELECTORS = {
    LINKEDIN: {
        "apply": [
            'button:has-text("Easy Apply")',
            'button:has-text("Apply")',
        ],
        "submit": [
            'button:has-text("Submit application")',
            'button:has-text("Apply")',
        ],
    },
    INDEED: {
        "apply": [
            'button:has-text("Apply Now")',
            'a:has-text("Apply Now")',
        ],
        "submit": [
            'button:has-text("Submit")',
            'input[type="submit"]',
        ],
    },
    COMPANY: {
        "apply": [
            'button:has-text("Apply")',
            'a:has-text("Apply")',
            'button:has-text("Join")',
            'a:has-text("Join")',
        ],
        "submit": [
            'button[type="submit"]',
            'input[type="submit"]',
            'button:has-text("Submit")',
            'button:has-text("Apply")',
        ],
    },
}

# Success indicators probed (without waiting) after the submit click.
CONFIRMATION_SELECTORS = [
    'text="Thank you"',
    'text="Application submitted"',
    'text="application has been submitted"',
    'text="application has been received"',
    'text="successfully submitted"',
    'text="We have received your application"',
    '[class*="success"]',
    '[class*="confirmation"]',
]


def _quiet(message, severity="info"):
    return None


@dataclass
class FieldMapping:
    """A detected form element, its role, and the value written into it (if any)."""

    element: object
    role: str
    attrs: dict
    value: str | None = None

    @property
    def question(self) -> str:
        return question_text(self.attrs)


def merge_selectors(defaults: dict, overrides: dict | None) -> dict:
    """Prepend override selectors to the defaults, per key, without duplicates."""
    merged = {key: list(values) for key, values in defaults.items()}
    for key, values in (overrides or {}).items():
        if isinstance(values, str):
            values = [values]
        combined = list(values) + merged.get(key, [])
        seen = set()
        merged[key] = [s for s in combined if not (s in seen or seen.add(s))]
    return merged


def load_selector_overrides(path: Path | None) -> dict:
    """Load ``platform -> {apply: [...], submit: [...], confirmation: [...]}`` overrides from YAML."""
    if not path:
        return {}
    path = Path(path)
    if not path.exists():
        print(f"  WARNING: selectors file not found: {path}")
        return {}
    data = yaml.safe_load(path.read_text()) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Selectors file is not a YAML mapping: {path}")
    return data


class SiteStrategy:
    """Base procedure; subclasses set ``platform`` and ``apply_required``."""

    platform = COMPANY
    # When False, a page with no apply control is accepted if a form is already present.
    apply_required = True

    def __init__(self, selectors=None, step_timeout_ms=10000, navigation_timeout_ms=30000,
                 form_wait_ms=2000, post_submit_wait_ms=2000):
        defaults = dict(DEFAULT_SELECTORS[self.platform], confirmation=CONFIRMATION_SELECTORS)
        self.selectors = merge_selectors(defaults, selectors)
        self.step_timeout_ms = step_timeout_ms
        self.navigation_timeout_ms = navigation_timeout_ms
        self.form_wait_ms = form_wait_ms
        self.post_submit_wait_ms = post_submit_wait_ms

    def __repr__(self):
        return f"{self.__class__.__name__}(platform={self.platform!r})"

    def start_url(self, job: Job) -> str | None:
        return job.application_url or fallback_url(self.platform, job.id)

    async def apply(self, page, profile: Profile, job: Job, log=None,
                    cover_letter: str | None = None) -> bool:
        """Drive ``page`` through the application form. True once submit was clicked."""
        log = log or _quiet

        url = self.start_url(job)
        if not url:
            log(f"No URL to open for {job.title}", "error")
            return False
        log(f"Navigating to {url}")
        await page.goto(url, wait_until="networkidle", timeout=self.navigation_timeout_ms)

        apply_control = await self.find_control(page, self.selectors.get("apply", []))
        if apply_control is not None:
            log("Clicking apply control")
            await apply_control.click(timeout=self.step_timeout_ms)
            await page.wait_for_timeout(self.form_wait_ms)
        elif self.apply_required:
            log(f"No apply control found on {self.platform} page", "warning")
            return False
        elif not await self.has_form(page):
            log("No apply control and no application form found", "warning")
            return False
        else:
            log("No apply control; using form already on page")

        mappings = await self.map_fields(page)
        log(f"Detected {len(mappings)} fillable field(s)")
        await self.fill_contact_fields(mappings, profile, log)
        await self.upload_resume(mappings, profile, log)
        await self.answer_questions(mappings, profile, job, log, cover_letter=cover_letter)

        submit_control = await self.find_control(page, self.selectors.get("submit", []))
        if submit_control is None:
            log("Could not find submit control", "warning")
            return False
        log("Clicking submit control")
        await submit_control.click(timeout=self.step_timeout_ms)
        await page.wait_for_timeout(self.post_submit_wait_ms)

        if await self.confirmation_seen(page):
            log("Submission confirmation detected")
        else:
            log("No confirmation detected after submit", "warning")
        return True

    async def find_control(self, page, selectors: list[str]):
        """First visible match from an ordered selector chain, or None.

        Each selector is resolved on its own, so a chain may mix CSS with other
        engines (``text=``, ``xpath=``, ``role=``). Hidden matches are skipped.
        The chain is rescanned in order until ``step_timeout_ms`` has passed;
        running out of time means "not found".
        """
        if not selectors:
            return None
        waited = 0
        while True:
            for selector in selectors:
                candidates = page.locator(selector)
                for i in range(await candidates.count()):
                    candidate = candidates.nth(i)
                    if await candidate.is_visible():
                        return candidate
            if waited >= self.step_timeout_ms:
                return None
            await page.wait_for_timeout(CONTROL_POLL_MS)
            waited += CONTROL_POLL_MS

    async def has_form(self, page) -> bool:
        return await page.locator(FIELD_SELECTOR).count() > 0

    async def map_fields(self, page) -> list[FieldMapping]:
        fields = page.locator(FIELD_SELECTOR)
        mappings = []
        for i in range(await fields.count()):
            element = fields.nth(i)
            attrs = await element.evaluate(DESCRIBE_FIELD_JS)
            role = detect_role(attrs)
            if role:
                mappings.append(FieldMapping(element=element, role=role, attrs=attrs))
        return mappings

    async def fill_contact_fields(self, mappings, profile: Profile, log) -> None:
        for role in (FULL_NAME, EMAIL, PHONE):
            value = profile_value(role, profile)
            mapping = next((m for m in mappings if m.role == role), None)
            if mapping is None or not value:
                continue
            current = await mapping.element.input_value()
            if not should_fill(current):
                log(f"Kept existing {role} value")
                continue
            await mapping.element.fill(value)
            mapping.value = value
            log(f"Filled {role}")

    async def upload_resume(self, mappings, profile: Profile, log) -> None:
        mapping = next((m for m in mappings if m.role == RESUME_FILE), None)
        if mapping is None:
            return
        resume = Path(profile.resume_path) if profile.resume_path else None
        if resume is None or not resume.exists():
            log("Resume upload field present but no resume file configured", "warning")
            return
        await mapping.element.set_input_files(str(resume))
        mapping.value = str(resume)
        log(f"Uploaded resume: {resume.name}")

    async def answer_questions(self, mappings, profile: Profile, job: Job, log,
                               cover_letter: str | None = None) -> None:
        """Fill empty free-text questions. Each topic is answered at most once per form."""
        used_topics = set()
        for mapping in mappings:
            if mapping.role != FREE_TEXT_QUESTION:
                continue
            question = mapping.question
            if cover_letter and is_cover_letter(question):
                topic, answer = "cover_letter", cover_letter
            else:
                topic = question_topic(question)
                answer = answer_for(question, profile, job)
            if answer is None:
                continue
            if topic in used_topics:
                log(f"Skipped '{question}': {topic} already answered on this form", "warning")
                continue
            used_topics.add(topic)
            current = await mapping.element.input_value()
            if not should_fill(current):
                log(f"Kept existing answer for '{question}'")
                continue
            await mapping.element.fill(answer)
            mapping.value = answer
            log(f"Answered '{question}' ({topic})")

    async def confirmation_seen(self, page) -> bool:
        for selector in self.selectors.get("confirmation", []):
            if await page.locator(selector).count() > 0:
                return True
        return False


class LinkedInStrategy(SiteStrategy):
    platform = LINKEDIN


class IndeedStrategy(SiteStrategy):
    platform = INDEED


class CompanyStrategy(SiteStrategy):
    platform = COMPANY
    apply_required = False


STRATEGIES = {
    LINKEDIN: LinkedInStrategy,
    INDEED: IndeedStrategy,
    COMPANY: CompanyStrategy,
}


def strategy_for(platform: str, overrides: dict | None = None, **kwargs) -> SiteStrategy:
    """Build the strategy for ``platform`` with its selector overrides applied."""
    cls = STRATEGIES.get(platform, CompanyStrategy)
    return cls(selectors=(overrides or {}).get(cls.platform), **kwargs)
