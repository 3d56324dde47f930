import json
import re
from typing import Any, List, Tuple, Pattern

from fix_plugin_azurerm.types import ValidateFunc

ValidationResult = Tuple[List[str], List[str]]

# regex pulled from https://docs.microsoft.com/en-us/rest/api/resources/resourcegroups/createorupdate
RESOURCE_GROUP_NAME_RE = re.compile(r"^[-\w._()]+$")
DATA_FACTORY_NAME_RE = re.compile(r"^[A-Za-z0-9]+(?:-[A-Za-z0-9]+)*$")
INTEGRATION_RUNTIME_FORBIDDEN_RE = re.compile(r"[.+?/<>*%&:\\]")

MAX_TAG_COUNT = 50
MAX_TAG_KEY_LENGTH = 512
MAX_TAG_VALUE_LENGTH = 256


def no_empty_strings(value: Any, key: str) -> ValidationResult:
    if not isinstance(value, str):
        return [], [f"expected type of {key!r} to be string"]
    if value.strip() == "":
        return [], [f"{key!r} must not be empty"]
    return [], []


def string_in_slice(valid: List[str], ignore_case: bool = False) -> ValidateFunc:
    def validate(value: Any, key: str) -> ValidationResult:
        if not isinstance(value, str):
            return [], [f"expected type of {key!r} to be string"]
        matches = (value.lower() == v.lower() if ignore_case else value == v for v in valid)
        if not any(matches):
            return [], [f"expected {key} to be one of {valid}, got {value}"]
        return [], []

    return validate


def int_between(minimum: int, maximum: int) -> ValidateFunc:
    def validate(value: Any, key: str) -> ValidationResult:
        if not isinstance(value, int) or isinstance(value, bool):
            return [], [f"expected type of {key!r} to be integer"]
        if value < minimum or value > maximum:
            return [], [f"expected {key} to be in the range ({minimum} - {maximum}), got {value}"]
        return [], []

    return validate


def string_match(pattern: Pattern[str], message: str) -> ValidateFunc:
    def validate(value: Any, key: str) -> ValidationResult:
        if not isinstance(value, str):
            return [], [f"expected type of {key!r} to be string"]
        if not pattern.match(value):
            return [], [f"invalid value for {key} ({message})"]
        return [], []

    return validate


def json_string(value: Any, key: str) -> ValidationResult:
    if not isinstance(value, str):
        return [], [f"expected type of {key!r} to be string"]
    if value == "":
        return [], []
    try:
        json.loads(value)
    except ValueError as e:
        return [], [f"{key!r} contains an invalid JSON: {e}"]
    return [], []


def resource_group_name(value: Any, key: str) -> ValidationResult:
    if not isinstance(value, str):
        return [], [f"expected type of {key!r} to be string"]
    errors = []
    if len(value) > 80:
        errors.append(f"{key!r} may not exceed 80 characters in length")
    if value.endswith("."):
        errors.append(f"{key!r} may not end with a period")
    if not RESOURCE_GROUP_NAME_RE.match(value):
        errors.append(f"{key!r} may only contain alphanumeric characters, dash, underscores, parentheses and periods")
    return [], errors


def integration_runtime_name(value: Any, key: str) -> ValidationResult:
    if not isinstance(value, str):
        return [], [f"expected type of {key!r} to be string"]
    if INTEGRATION_RUNTIME_FORBIDDEN_RE.search(value):
        return [], [rf"any of '.', '+', '?', '/', '<', '>', '*', '%', '&', ':', '\', are not allowed in {key!r}: {value!r}"]
    return [], []


data_factory_name = string_match(
    DATA_FACTORY_NAME_RE,
    "see https://docs.microsoft.com/en-us/azure/data-factory/naming-rules",
)


def tags(value: Any, key: str) -> ValidationResult:
    if not isinstance(value, dict):
        return [], [f"expected type of {key!r} to be a map"]
    errors = []
    if len(value) > MAX_TAG_COUNT:
        errors.append(f"a maximum of {MAX_TAG_COUNT} tags can be applied to each ARM resource")
    for k, v in value.items():
        if len(k) > MAX_TAG_KEY_LENGTH:
            errors.append(f"the maximum length for a tag key is {MAX_TAG_KEY_LENGTH} characters: {k!r}")
        if not isinstance(v, str):
            errors.append(f"the value of tag {k!r} must be a string")
        elif len(v) > MAX_TAG_VALUE_LENGTH:
            errors.append(f"the maximum length for a tag value is {MAX_TAG_VALUE_LENGTH} characters: {k!r}")
    return [], errors
