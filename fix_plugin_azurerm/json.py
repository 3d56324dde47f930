import json
import logging
from typing import TypeVar, Type, Optional

import cattrs

from fix_plugin_azurerm.types import Json, JsonElement

log = logging.getLogger("fix.plugins.azurerm")
AnyT = TypeVar("AnyT")

# the global converter instance
__converter = cattrs.Converter()


def from_json(js: JsonElement, clazz: Type[AnyT]) -> AnyT:
    """
    Loads a json object into a python object.
    :param js: the json object to load.
    :param clazz: the type of the python object.
    :return: the loaded python object.
    """
    try:
        return __converter.structure(js, clazz)
    except Exception as e:
        log.debug(f"Can not deserialize json into class {clazz.__name__}: {js}. Error: {e}")
        raise


def expand_json_from_string(value: str) -> Json:
    """
    Decode a JSON-string valued attribute into its structured form.
    Only JSON objects are accepted, since this is what the API expects.
    """
    result = json.loads(value)
    if not isinstance(result, dict):
        raise ValueError(f"expected a JSON object but got {type(result).__name__}")
    return result


def flatten_json_to_string(value: JsonElement) -> str:
    """
    Encode a structured value into its canonical string form.
    Keys are sorted so the same structure always yields the same string.
    """
    if value is None:
        return ""
    return json.dumps(value, sort_keys=True)


def normalize_json_string(value: Optional[str]) -> str:
    if not value:
        return ""
    return flatten_json_to_string(json.loads(value))


def json_string_equal(left: Optional[str], right: Optional[str]) -> bool:
    """
    True if both strings encode the same JSON structure (key order and whitespace are irrelevant).
    Undecodable input is never equal to anything.
    """
    try:
        return normalize_json_string(left) == normalize_json_string(right)
    except ValueError:
        return False
