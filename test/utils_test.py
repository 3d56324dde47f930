from fix_plugin_azurerm.utils import (
    case_insensitive_eq,
    expand_tags,
    flatten_tags,
    normalize_location,
    suppress_case_difference,
    suppress_json_difference,
    suppress_location_difference,
)


def test_normalize_location() -> None:
    assert normalize_location("West Europe") == "westeurope"
    assert normalize_location("westeurope") == "westeurope"
    assert normalize_location(None) == ""


def test_suppressors() -> None:
    assert case_insensitive_eq("ABC", "abc")
    assert not case_insensitive_eq(1, 2)
    assert suppress_case_difference("resource_group_name", "Acctest-RG", "acctest-rg")
    assert suppress_location_difference("location", "westeurope", "West Europe")
    assert not suppress_location_difference("location", "westeurope", "North Europe")
    assert suppress_json_difference("settings", '{"a": 1, "b": [1]}', '{"b": [1], "a": 1}')
    assert not suppress_json_difference("settings", '{"a": 1}', "{")


def test_tags() -> None:
    assert expand_tags({"env": "prod", "count": 3}) == {"env": "prod", "count": "3"}
    assert expand_tags(None) == {}
    assert flatten_tags({"env": "prod", "empty": None}) == {"env": "prod"}
    assert flatten_tags(None) == {}
