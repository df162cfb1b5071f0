ADMIN = "admin"
POC = "POC"
TECH_LEAD = "Tech Lead"
INTERN = "AI Developer Intern"

ROLES = [ADMIN, POC, TECH_LEAD, INTERN]

# Roles that belong to a college
COLLEGE_ROLES = [POC, TECH_LEAD, INTERN]

# Older names still found in stored users and imports
LEGACY_ROLES = {
    "admin": ADMIN,
    "super-admin": ADMIN,
    "poc": POC,
    "super-mentor": POC,
    "super_mentor": POC,
    "tech lead": TECH_LEAD,
    "tech-lead": TECH_LEAD,
    "mentor": TECH_LEAD,
    "intern": INTERN,
    "ai developer intern": INTERN,
}


def normalize_role(value):
    if not value:
        return None
    if value in ROLES:
        return value
    return LEGACY_ROLES.get(str(value).strip().lower())


def is_valid_role(value):
    return normalize_role(value) is not None


def role_variants(role):
    """Canonical role plus every legacy spelling, for $in queries."""
    canonical = normalize_role(role)
    if canonical is None:
        return []
    variants = [canonical]
    for legacy, target in LEGACY_ROLES.items():
        if target == canonical and legacy not in variants:
            variants.append(legacy)
    return variants
