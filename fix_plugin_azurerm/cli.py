"""
Local host for the resource handlers.

Reads a resource document ({"kind": ..., "config": {...}}) and an optional state file,
runs the requested operation and writes the resulting state back.
"""
import json
import logging
import os
import sys
from argparse import ArgumentParser, Namespace
from typing import List, Optional

from fix_plugin_azurerm import AzureRmProvider
from fix_plugin_azurerm.azure_client import MicrosoftClient
from fix_plugin_azurerm.config import AzureRmConfig
from fix_plugin_azurerm.errors import AzureRmError, ValidationError
from fix_plugin_azurerm.logger import add_args, setup_logger
from fix_plugin_azurerm.resource.base import ProviderMeta
from fix_plugin_azurerm.schema import ResourceData, diff, redact
from fix_plugin_azurerm.types import Json

log = logging.getLogger("fix.plugins.azurerm")


def parse_args(args: Optional[List[str]] = None) -> Namespace:
    parser = ArgumentParser(prog="fix-azurerm", description="Manage Azure resources from JSON documents.")
    add_args(parser)
    parser.add_argument("--config", dest="config", help="Provider configuration file (json)", default=None)
    parser.add_argument("--state", dest="state", help="State file (json) to read and write", default=None)
    parser.add_argument(
        "--resources-must-be-imported",
        dest="resources_must_be_imported",
        action="store_true",
        default=False,
        help="Refuse to adopt existing resources on create",
    )
    parser.add_argument(
        "command",
        choices=["validate", "apply", "refresh", "destroy", "read-data"],
        help="The operation to perform",
    )
    parser.add_argument("resource", help="Resource document (json) with kind and config")
    return parser.parse_args(args)


def load_json(path: Optional[str]) -> Json:
    if not path or not os.path.exists(path):
        return {}
    with open(path, encoding="utf-8") as f:
        content = json.load(f)
    if not isinstance(content, dict):
        raise ValidationError.single(f"{path}: expected a json object")
    return content


def write_json(path: Optional[str], content: Json) -> None:
    if not path:
        return
    with open(path, "w", encoding="utf-8") as f:
        json.dump(content, f, indent=2, sort_keys=True)


def load_config(args: Namespace) -> AzureRmConfig:
    config = AzureRmConfig.from_env(load_json(args.config))
    if args.resources_must_be_imported:
        config.features.resources_must_be_imported = True
    return config


def apply(kind: str, config: Json, state: Json, meta: ProviderMeta) -> Json:
    handler = AzureRmProvider.resources[kind]
    if not state.get("id"):
        log.info(f"Create {kind}")
        d = ResourceData(handler.schema, config)
        handler.create(d, meta)
        return d.state()

    changes = diff(handler.schema, state, config)
    if changes.empty:
        log.info(f"{kind} {state['id']} is up to date")
        return state
    if changes.requires_replacement:
        log.info(f"Replace {kind} {state['id']}: {', '.join(changes.requires_replace)} forces a new resource")
        handler.delete(ResourceData(handler.schema, config, state), meta)
        d = ResourceData(handler.schema, config)
        handler.create(d, meta)
        return d.state()

    log.info(f"Update {kind} {state['id']}: {', '.join(changes.changed)}")
    d = ResourceData(handler.schema, config, state)
    handler.update(d, meta)
    return d.state()


def run(args: Namespace, client: Optional[MicrosoftClient] = None) -> Json:
    document = load_json(args.resource)
    kind = document.get("kind", "")
    resource_config: Json = document.get("config") or {}
    AzureRmProvider.validate(kind, resource_config)
    if args.command == "validate":
        return {}

    meta = AzureRmProvider.meta(load_config(args), client)
    if args.command == "read-data":
        if (data_source := AzureRmProvider.data_sources.get(kind)) is None:
            raise ValidationError.single(f"{kind!r} is not a data source")
        d = ResourceData(data_source.schema, resource_config)
        data_source.read(d, meta)
        return d.state()

    if (handler := AzureRmProvider.resources.get(kind)) is None:
        raise ValidationError.single(f"{kind!r} is not a managed resource")
    state = load_json(args.state)
    if args.command == "apply":
        result = apply(kind, resource_config, state, meta)
    elif args.command == "refresh":
        if not state.get("id"):
            raise ValidationError.single(f"{kind!r} has no state to refresh")
        d = ResourceData(handler.schema, resource_config, state)
        handler.read(d, meta)
        result = d.state()
    else:
        if state.get("id"):
            handler.delete(ResourceData(handler.schema, resource_config, state), meta)
        result = {}
    write_json(args.state, result)
    return redact(handler.schema, result)


def main(args: Optional[List[str]] = None, client: Optional[MicrosoftClient] = None) -> int:
    parsed = parse_args(args)
    setup_logger("fix-azurerm", verbose=parsed.verbose, quiet=parsed.quiet, json_format=parsed.log_json)
    try:
        result = run(parsed, client)
    except ValidationError as e:
        for error in e.errors:
            log.error(f"Invalid configuration: {error}")
        return 1
    except AzureRmError as e:
        log.error(f"{parsed.command} failed: {e}")
        return 1
    if parsed.command == "validate":
        print("The configuration is valid.")
    else:
        print(json.dumps(result, indent=2, sort_keys=True))
    return 0


if __name__ == "__main__":
    sys.exit(main())
