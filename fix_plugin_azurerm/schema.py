"""
Attribute declarations of resources and data sources, and the attribute accessor handed to the handlers.

The host decides when to create, read, update or delete. This module only offers what the host needs
from a handler's point of view: validate a configuration, compute which attributes changed and whether
the change forces a replacement, and read/write attribute values during a single operation.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from attr import define, field

from fix_plugin_azurerm.errors import ValidationError
from fix_plugin_azurerm.types import Json, ValidateFunc, DiffSuppressFunc

log = logging.getLogger("fix.plugins.azurerm")

SENSITIVE_PLACEHOLDER = "(sensitive value)"


class SchemaType(Enum):
    string = "string"
    bool = "bool"
    int = "int"
    map = "map"
    list = "list"


_python_types: Dict[SchemaType, Tuple[type, ...]] = {
    SchemaType.string: (str,),
    SchemaType.bool: (bool,),
    SchemaType.int: (int,),
    SchemaType.map: (dict,),
    SchemaType.list: (list,),
}


@define
class Schema:
    type: SchemaType
    required: bool = False
    optional: bool = False
    computed: bool = False
    # a change of this attribute can not be applied in place: the resource is replaced
    force_new: bool = False
    # the value is withheld from log and diff output
    sensitive: bool = False
    deprecated: Optional[str] = None
    validate_func: Optional[ValidateFunc] = None
    conflicts_with: List[str] = field(factory=list)
    exactly_one_of: List[str] = field(factory=list)
    diff_suppress_func: Optional[DiffSuppressFunc] = None
    # normalizes a configured value before it is compared or stored
    state_func: Optional[Any] = None
    max_items: int = 0
    # nested block definition for list attributes
    elem: Optional[Dict[str, Schema]] = None

    def zero_value(self) -> Any:
        if self.type == SchemaType.string:
            return ""
        elif self.type == SchemaType.bool:
            return False
        elif self.type == SchemaType.int:
            return 0
        elif self.type == SchemaType.map:
            return {}
        else:
            return []

    def is_set(self, value: Any) -> bool:
        return value is not None and value != self.zero_value()


SchemaMap = Dict[str, Schema]


def validate_config(schema: SchemaMap, config: Json, prefix: str = "") -> List[str]:
    """
    Validate the given configuration against the schema.
    Deprecation warnings are logged, every error is returned.
    """
    errors: List[str] = []

    def add(msg: str) -> None:
        if msg not in errors:
            errors.append(msg)

    for key in config:
        if key not in schema:
            add(f"An argument named {prefix + key!r} is not expected here.")

    for key, sch in schema.items():
        name = prefix + key
        value = config.get(key)
        if sch.exactly_one_of:
            group = sorted(set(sch.exactly_one_of) | {key})
            specified = [k for k in group if config.get(k) is not None]
            if len(specified) != 1:
                keys = ", ".join(f"`{prefix + k}`" for k in group)
                if specified:
                    add(f"{name!r}: only one of {keys} can be specified, but {', '.join(specified)} were specified.")
                else:
                    add(f"{name!r}: one of {keys} must be specified")
        if value is None:
            if sch.required:
                add(f"The argument {name!r} is required, but no definition was found.")
            continue
        if sch.computed and not sch.optional and not sch.required:
            add(f"{name!r}: this field cannot be set")
            continue
        if not isinstance(value, _python_types[sch.type]) or (sch.type == SchemaType.int and isinstance(value, bool)):
            add(f"{name!r}: expected type {sch.type.value}, got {type(value).__name__}")
            continue
        if sch.deprecated:
            log.warning(f"Argument {name!r} is deprecated: {sch.deprecated}")
        for other in sch.conflicts_with:
            if config.get(other) is not None:
                add(f"{name!r}: conflicts with {prefix + other}")
        if sch.validate_func is not None:
            warnings, errs = sch.validate_func(value, name)
            for warning in warnings:
                log.warning(warning)
            for err in errs:
                add(err)
        if sch.type == SchemaType.list:
            if sch.max_items and len(value) > sch.max_items:
                add(f"{name!r}: attribute supports {sch.max_items} item maximum, config has {len(value)} declared")
            if sch.elem is not None:
                for idx, item in enumerate(value):
                    if not isinstance(item, dict):
                        add(f"{name}.{idx}: expected a block")
                        continue
                    for err in validate_config(sch.elem, item, f"{name}.{idx}."):
                        add(err)
    return errors


def ensure_valid(schema: SchemaMap, config: Json) -> None:
    if errors := validate_config(schema, config):
        raise ValidationError(errors)


def redact(schema: SchemaMap, values: Json) -> Json:
    """Replace sensitive values, so the result can be logged or shown in a diff."""
    result: Json = {}
    for key, value in values.items():
        sch = schema.get(key)
        if sch is not None and sch.sensitive and sch.is_set(value):
            result[key] = SENSITIVE_PLACEHOLDER
        elif sch is not None and sch.elem is not None and isinstance(value, list):
            result[key] = [redact(sch.elem, v) if isinstance(v, dict) else v for v in value]
        else:
            result[key] = value
    return result


@define
class ResourceDiff:
    changed: List[str] = field(factory=list)
    requires_replace: List[str] = field(factory=list)

    @property
    def empty(self) -> bool:
        return not self.changed

    @property
    def requires_replacement(self) -> bool:
        return bool(self.requires_replace)


def _differs(name: str, sch: Schema, old: Any, new: Any) -> Tuple[bool, bool]:
    """
    Compare a stored value with a configured one.
    Returns whether the value changed and whether the change forces a replacement.
    A change of a force-new attribute inside a nested block replaces the whole resource.
    """
    if sch.state_func is not None and new is not None:
        new = sch.state_func(new)
    if not sch.is_set(old) and not sch.is_set(new):
        return False, False
    if sch.diff_suppress_func is not None and sch.diff_suppress_func(name, old, new):
        return False, False
    if sch.elem is not None and isinstance(old, list) and isinstance(new, list):
        if len(old) != len(new):
            return True, sch.force_new
        changed = force_new = False
        for old_item, new_item in zip(old, new):
            for key, nested in sch.elem.items():
                old_value = old_item.get(key) if isinstance(old_item, dict) else None
                new_value = new_item.get(key) if isinstance(new_item, dict) else None
                if new_value is None and nested.computed:
                    continue
                nested_changed, nested_force_new = _differs(f"{name}.{key}", nested, old_value, new_value)
                changed = changed or nested_changed
                force_new = force_new or nested_force_new
        return changed, changed and (sch.force_new or force_new)
    changed = bool(old != new)
    return changed, changed and sch.force_new


def diff(schema: SchemaMap, state: Json, config: Json) -> ResourceDiff:
    """
    Compute the attributes that differ between the stored state and the desired configuration.
    Computed attributes that are not configured keep their remote value and never count as change.
    """
    result = ResourceDiff()
    for key, sch in schema.items():
        new = config.get(key)
        if new is None and sch.computed:
            continue
        changed, force_new = _differs(key, sch, state.get(key), new)
        if changed:
            result.changed.append(key)
            if force_new:
                result.requires_replace.append(key)
    return result


class ResourceData:
    """
    Attribute accessor and mutator handed to every handler operation.

    Values are looked up in this order: values set during this operation, the configuration, the stored state.
    An empty identifier means the resource is absent.
    """

    def __init__(
        self,
        schema: SchemaMap,
        config: Optional[Json] = None,
        state: Optional[Json] = None,
        resource_id: Optional[str] = None,
    ) -> None:
        self.schema = schema
        self._config: Json = dict(config or {})
        self._state: Json = dict(state or {})
        self._written: Json = {}
        self._id: str = resource_id if resource_id is not None else self._state.pop("id", "") or ""
        self._state.pop("id", None)
        self._new_resource = not self._id

    @property
    def id(self) -> str:
        return self._id

    def set_id(self, resource_id: str) -> None:
        self._id = resource_id
        if not resource_id:
            self._state = {}
            self._written = {}

    def is_new_resource(self) -> bool:
        return self._new_resource

    def _schema_of(self, key: str) -> Schema:
        if (sch := self.schema.get(key)) is None:
            raise KeyError(f"Invalid attribute name: {key}")
        return sch

    def get(self, key: str) -> Any:
        sch = self._schema_of(key)
        for source in (self._written, self._config, self._state):
            if (value := source.get(key)) is not None:
                return value
        return sch.zero_value()

    def get_ok(self, key: str) -> Tuple[Any, bool]:
        value = self.get(key)
        return value, self._schema_of(key).is_set(value)

    def set(self, key: str, value: Any) -> None:
        sch = self._schema_of(key)
        if value is not None and not isinstance(value, _python_types[sch.type]):
            raise TypeError(f"{key}: expected type {sch.type.value}, got {type(value).__name__}")
        self._written[key] = value

    def has_change(self, key: str) -> bool:
        sch = self._schema_of(key)
        new = self._config.get(key)
        if new is None and sch.computed:
            return False
        changed, _ = _differs(key, sch, self._state.get(key), new)
        return changed

    def state(self) -> Json:
        """The state to persist after the operation. Empty, if the resource is absent."""
        if not self._id:
            return {}
        merged = {**self._state, **self._config, **self._written}
        return {"id": self._id, **{k: v for k, v in merged.items() if k in self.schema}}
