"""
Role and cohort detection from GitLab usernames.

Detection is a first-match scan over ordered regex lists: admin patterns,
then POC (super-mentor), then Tech Lead. Anything else is an intern.
"""

import re

from models.roles import ADMIN, INTERN, POC, TECH_LEAD

ADMIN_PATTERNS = [
    re.compile(r"^admin"),
    re.compile(r"admin$"),
    re.compile(r"^root"),
    re.compile(r"^superuser"),
    re.compile(r"_admin$"),
    re.compile(r"^sys"),
    re.compile(r"^master"),
]

POC_PATTERNS = [
    re.compile(r"^poc"),
    re.compile(r"^chief"),
    re.compile(r"^head"),
    re.compile(r"^principal"),
    re.compile(r"_super$"),
    re.compile(r"^director"),
]

TECH_LEAD_PATTERNS = [
    re.compile(r"^mentor"),
    re.compile(r"mentor$"),
    re.compile(r"^lead"),
    re.compile(r"^senior"),
    re.compile(r"^supervisor"),
    re.compile(r"_mentor$"),
    re.compile(r"_lead$"),
    re.compile(r"^team_lead"),
    re.compile(r"^tl_"),
]

# (pattern, kind) in priority order
COHORT_PATTERNS = [
    (re.compile(r"(\d{4})"), "year"),
    (re.compile(r"batch[_-]?(\d+)"), "batch"),
    (re.compile(r"cohort[_-]?(\d+)"), "cohort"),
    (re.compile(r"group[_-]?([a-z]\d*)"), "group"),
    (re.compile(r"team[_-]?([a-z]\d*)"), "team"),
    (re.compile(r"sem[_-]?(\d+)"), "semester"),
    (re.compile(r"s(\d+)"), None),
    (re.compile(r"level[_-]?(\d+)"), "level"),
    (re.compile(r"l(\d+)"), None),
    (re.compile(r"class[_-]?([a-z]\d*)"), "class"),
]

USERNAME_CHARS = re.compile(r"^[a-zA-Z0-9._-]+$")


def _clean(username):
    return (username or "").strip().lower()


def detect_user_role(gitlab_username):
    username = _clean(gitlab_username)
    if not username:
        return INTERN

    for role, patterns in ((ADMIN, ADMIN_PATTERNS),
                           (POC, POC_PATTERNS),
                           (TECH_LEAD, TECH_LEAD_PATTERNS)):
        if any(p.search(username) for p in patterns):
            return role
    return INTERN


def _cohort_name(identifier, kind):
    if kind == "batch":
        return f"Batch {identifier}"
    if kind == "cohort":
        return f"Cohort {identifier}"
    if kind == "group":
        return f"Group {identifier.upper()}"
    if kind == "team":
        return f"Team {identifier.upper()}"
    if kind == "semester":
        return f"Semester {identifier}"
    if kind == "level":
        return f"Level {identifier}"
    if kind == "class":
        return f"Class {identifier.upper()}"
    if re.search(r"\d{4}", identifier):
        return f"Class of {identifier}"
    return f"Cohort {identifier}"


def detect_cohort_from_username(gitlab_username):
    username = _clean(gitlab_username)
    if not username:
        return None

    for pattern, kind in COHORT_PATTERNS:
        match = pattern.search(username)
        if match:
            identifier = match.group(1)
            return {
                "identifier": identifier,
                "type": pattern.pattern,
                "suggestedName": _cohort_name(identifier, kind),
            }
    return None


def validate_gitlab_username(username):
    """Return (valid, message) following GitLab's username rules."""
    if not username:
        return False, "GitLab username is required"

    trimmed = username.strip()
    if len(trimmed) < 2:
        return False, "Username must be at least 2 characters long"
    if len(trimmed) > 255:
        return False, "Username must be less than 255 characters"
    if not trimmed[0].isascii() or not trimmed[0].isalnum():
        return False, "Username must start with a letter or number"
    if not USERNAME_CHARS.match(trimmed):
        return False, "Username can only contain letters, numbers, dots, dashes, and underscores"
    if trimmed.endswith("."):
        return False, "Username cannot end with a dot"
    if ".." in trimmed:
        return False, "Username cannot contain consecutive dots"
    return True, "Valid username"


def _confidence(username, role):
    if not username:
        return 0
    lowered = username.lower()
    if role == ADMIN and re.search(r"^admin|admin$|^root|^superuser", lowered):
        return 0.9
    if role == POC and re.search(r"^poc|^chief|^head|^principal", lowered):
        return 0.9
    if role == TECH_LEAD and re.search(r"^mentor|mentor$|^lead|^senior", lowered):
        return 0.8
    if role != INTERN:
        return 0.6
    return 0.3


def get_role_suggestions(gitlab_username):
    role = detect_user_role(gitlab_username)
    cohort_info = detect_cohort_from_username(gitlab_username)

    suggestions = [f"Detected role: {role}"]
    if cohort_info:
        suggestions.append(f"Suggested cohort: {cohort_info['suggestedName']}")
        suggestions.append(f"Based on pattern: {cohort_info['identifier']}")

    return {
        "detectedRole": role,
        "cohortInfo": cohort_info,
        "confidence": _confidence(gitlab_username, role),
        "suggestions": suggestions,
    }
