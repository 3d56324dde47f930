from typing import Dict, Any, Union, Mapping, Sequence, Callable, List, Tuple

# mypy does not support recursive type definitions
# See discussion here: https://github.com/python/typing/issues/182
Json = Dict[str, Any]
JsonElement = Union[str, int, float, bool, None, Mapping[str, Any], Sequence[Any]]
# validators receive the value and the attribute name and return (warnings, errors)
ValidateFunc = Callable[[Any, str], Tuple[List[str], List[str]]]
DiffSuppressFunc = Callable[[str, Any, Any], bool]
