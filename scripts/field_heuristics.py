"""Heuristic field detection and canned answers for application forms.

Maps the attributes of a form element (tag, type, name, id, placeholder,
label text) to a semantic role, and maps free-text question wording to a
templated answer built from the candidate profile and the job. No I/O.
"""

import re

from pipeline_lib import Job, Profile, parse_experience_years

FULL_NAME = "full-name"
EMAIL = "email"
PHONE = "phone"
RESUME_FILE = "resume-file"
FREE_TEXT_QUESTION = "free-text-question"

FIELD_ROLES = (FULL_NAME, EMAIL, PHONE, RESUME_FILE, FREE_TEXT_QUESTION)

# Explicit input types outrank any name/placeholder/label substring.
TYPE_ROLES = {
    "email": EMAIL,
    "tel": PHONE,
    "file": RESUME_FILE,
}

# Input types that are never filled with profile data.
IGNORED_TYPES = {
    "hidden", "submit", "button", "reset", "checkbox", "radio",
    "image", "password", "search", "date", "number", "url",
}

# Substring heuristics, checked in order; first match wins.
SUBSTRING_ROLES = [
    (re.compile(r"e-?mail", re.I), EMAIL),
    (re.compile(r"phone|mobile|\btel\b|telephone", re.I), PHONE),
    (re.compile(r"resume|r[ée]sum[ée]|\bcv\b", re.I), None),
    (re.compile(r"name", re.I), FULL_NAME),
]

# Names that contain "name" but are not the candidate's full name.
NOT_FULL_NAME = re.compile(
    r"user.?name|company|employer|school|reference|recruiter|referr|manager|"
    r"first.?name|last.?name|given.?name|family.?name|middle.?name|surname|pronounc",
    re.I,
)

# Ordered question topics: (topic, pattern). First match wins.
QUESTION_TOPICS = [
    ("why_company", re.compile(r"why do you want to work|why this company|why us\b|why .*join|interest(ed)? in (this|our)", re.I)),
    ("experience", re.compile(r"experience|background|previous role", re.I)),
    ("salary", re.compile(r"salary|compensation|pay.*expect|expectations", re.I)),
    ("availability", re.compile(r"availability|start date|when can you start|earliest.*start|notice period", re.I)),
]


COVER_LETTER_RE = re.compile(r"cover.?letter|letter of (interest|motivation)|motivation(al)? letter", re.I)


def is_cover_letter(text: str) -> bool:
    return bool(text and COVER_LETTER_RE.search(text))


def _attr_text(attrs: dict) -> str:
    parts = [
        attrs.get("name"), attrs.get("id"), attrs.get("placeholder"),
        attrs.get("label"), attrs.get("aria_label"),
    ]
    return " ".join(str(p) for p in parts if p)


def question_text(attrs: dict) -> str:
    """Human-readable question wording for a field: label, then placeholder, then name."""
    for key in ("label", "aria_label", "placeholder", "name", "id"):
        value = attrs.get(key)
        if value and str(value).strip():
            return str(value).strip()
    return ""


def detect_role(attrs: dict) -> str | None:
    """Classify a form field by its attributes. Returns a FIELD_ROLES value or None."""
    tag = str(attrs.get("tag") or "input").lower()
    input_type = str(attrs.get("type") or "").lower()

    if tag == "select":
        return None
    if tag == "input":
        if input_type in TYPE_ROLES:
            return TYPE_ROLES[input_type]
        if input_type in IGNORED_TYPES:
            return None

    text = _attr_text(attrs)
    for pattern, role in SUBSTRING_ROLES:
        if not pattern.search(text):
            continue
        if role is None:
            # resume-ish text field (e.g. "paste your resume") is a question box
            return FREE_TEXT_QUESTION if tag == "textarea" else None
        if role == FULL_NAME and NOT_FULL_NAME.search(text):
            continue
        return role

    if tag == "textarea":
        return FREE_TEXT_QUESTION
    if question_topic(text):
        return FREE_TEXT_QUESTION
    return None


def question_topic(text: str) -> str | None:
    """Return the first QUESTION_TOPICS topic whose pattern matches ``text``."""
    if not text:
        return None
    for topic, pattern in QUESTION_TOPICS:
        if pattern.search(text):
            return topic
    return None


def _top_skills(profile: Profile, n: int | None = 3) -> str:
    skills = [s for s in profile.skills if s]
    if n is not None:
        skills = skills[:n]
    return ", ".join(skills) if skills else "my core technical skills"


def render_answer(topic: str, profile: Profile, job: Job) -> str:
    """Templated answer for a question topic."""
    if topic == "why_company":
        return (
            f"I am excited about {job.company or 'your company'} because of its work in the "
            f"industry and the opportunity to contribute my skills in "
            f"{_top_skills(profile)} to meaningful projects as a {job.title}."
        )
    if topic == "experience":
        years = parse_experience_years(profile.experience)
        span = profile.experience if years else "several years"
        if years and "year" not in span.lower():
            span = f"{span} years"
        return (
            f"I have {span} of experience as a "
            f"{profile.title or 'software developer'}, with expertise in "
            f"{_top_skills(profile, None)}."
        )
    if topic == "salary":
        answer = (
            "I am open to discussing competitive compensation based on the role "
            "requirements and my experience level."
        )
        if profile.preferences.min_salary:
            answer += f" My target base salary starts at ${profile.preferences.min_salary:,}."
        return answer
    if topic == "availability":
        return (
            "I am available to start within 2-4 weeks, depending on the notice "
            "period required by my current employer."
        )
    raise ValueError(f"Unknown question topic: {topic!r}")


def answer_for(question: str, profile: Profile, job: Job) -> str | None:
    """Templated answer for a free-text question, or None to leave it blank."""
    topic = question_topic(question)
    if topic is None:
        return None
    return render_answer(topic, profile, job)


def profile_value(role: str, profile: Profile) -> str | None:
    """Profile value used to fill a contact-field role."""
    if role == FULL_NAME:
        return profile.name or None
    if role == EMAIL:
        return profile.email or None
    if role == PHONE:
        return profile.phone or None
    return None


def should_fill(current_value) -> bool:
    """Only empty fields are filled; pre-filled values are never overwritten."""
    return not (current_value or "").strip()
