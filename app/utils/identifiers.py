"""
Human-facing identifiers for problems.
"""

import re
import secrets
import string

PROBLEM_ID_PREFIX = "PROB-"
PROBLEM_ID_LENGTH = 9
PROBLEM_ID_ALPHABET = string.ascii_uppercase + string.digits
PROBLEM_ID_PATTERN = re.compile(r"^PROB-[A-Z0-9]{9}$")


def generate_problem_id() -> str:
    """Return a fresh id like PROB-7K2M9QX4A. Uniqueness is checked by the store."""
    suffix = "".join(secrets.choice(PROBLEM_ID_ALPHABET) for _ in range(PROBLEM_ID_LENGTH))
    return f"{PROBLEM_ID_PREFIX}{suffix}"


def legacy_problem_id(document_id: str) -> str:
    """Display id for records created before problem ids existed."""
    return f"{PROBLEM_ID_PREFIX}{document_id[-6:]}"
