import math
import re
from typing import Any, Dict, List

EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")

REQUIRED_USER_FIELDS = ["username", "password", "email"]
USER_ROLE_FIELDS = ["admin", "graduate", "employer"]


def _is_non_empty_str(v: Any) -> bool:
    return isinstance(v, str) and v.strip() != ""


def _is_number(v: Any) -> bool:
    # bool is an int subclass; reject it explicitly. NaN and Infinity parse as JSON floats
    return isinstance(v, (int, float)) and not isinstance(v, bool) and math.isfinite(v)


def _is_int(v: Any) -> bool:
    return isinstance(v, int) and not isinstance(v, bool)


def validate_registration(data: Dict[str, Any]) -> List[str]:
    """
    Returns a list of validation error messages. Empty list means valid.
    """
    errors: List[str] = []

    for f in REQUIRED_USER_FIELDS:
        if f not in data:
            errors.append(f"Missing required field: {f}")
        elif not _is_non_empty_str(data[f]):
            errors.append(f"Field '{f}' must be a non-empty string")

    if _is_non_empty_str(data.get("email")) and not EMAIL_RE.match(data["email"].strip()):
        errors.append("Field 'email' must be a valid email address")

    for f in USER_ROLE_FIELDS:
        if f in data and not isinstance(data[f], bool):
            errors.append(f"Field '{f}' must be a boolean if provided")

    return errors


def validate_login(data: Dict[str, Any]) -> List[str]:
    errors: List[str] = []
    for f in ("username", "password"):
        if not _is_non_empty_str(data.get(f)):
            errors.append(f"Field '{f}' must be a non-empty string")
    return errors


def validate_job(data: Dict[str, Any]) -> List[str]:
    """Title is mandatory; yoe and role_id must be positive."""
    errors: List[str] = []

    if not _is_non_empty_str(data.get("title")):
        errors.append("Job title and role are mandatory when creating new Job")

    yoe = data.get("yoe")
    if not _is_number(yoe) or yoe <= 0:
        errors.append("Field 'yoe' must be a finite number greater than 0")

    role_id = data.get("role_id")
    if not _is_int(role_id) or role_id <= 0:
        errors.append("Field 'role_id' must be a positive integer")

    if "is_recruiting" in data and not isinstance(data["is_recruiting"], bool):
        errors.append("Field 'is_recruiting' must be a boolean if provided")

    return errors


def validate_cv(data: Dict[str, Any]) -> List[str]:
    errors: List[str] = []

    if not _is_number(data.get("gpa")):
        errors.append("Field 'gpa' must be a finite number")

    yoe = data.get("yoe")
    if not _is_number(yoe) or yoe < 0:
        errors.append("Field 'yoe' must be a finite non-negative number")

    for f in ("graduate_id", "job_role_id"):
        if not _is_int(data.get(f)) or data[f] <= 0:
            errors.append(f"Field '{f}' must be a positive integer")

    skills = data.get("skill_ids", [])
    if not isinstance(skills, list) or not all(_is_int(s) for s in skills):
        errors.append("Field 'skill_ids' must be a list of integers if provided")

    return errors


def validate_message(data: Dict[str, Any]) -> List[str]:
    errors = validate_id_fields(data, ["sender_id", "receiver_id"])
    if not _is_non_empty_str(data.get("message")):
        errors.append("Message can't be empty")
    return errors


def validate_friendship(data: Dict[str, Any]) -> List[str]:
    errors = validate_id_fields(data, ["from", "to"])
    if not errors and data["from"] == data["to"]:
        errors.append("You can't add yourself as a friend")
    return errors


def validate_name(data: Dict[str, Any]) -> List[str]:
    """Used for job roles and skills."""
    if not _is_non_empty_str(data.get("name")):
        return ["Field 'name' must be a non-empty string"]
    return []


def validate_id_fields(data: Dict[str, Any], fields: List[str]) -> List[str]:
    errors: List[str] = []
    for f in fields:
        if f not in data:
            errors.append(f"Missing required field: {f}")
        elif not _is_int(data[f]) or data[f] <= 0:
            errors.append(f"Field '{f}' must be a positive integer")
    return errors
