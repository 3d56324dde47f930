import json
import logging
from argparse import ArgumentParser

from fix_plugin_azurerm.logger import JsonFormatter, add_args


def test_json_formatter() -> None:
    formatter = JsonFormatter({"level": "levelname", "message": "message"}, static_values={"process": "test"})
    record = logging.LogRecord("fix.plugins.azurerm", logging.INFO, __file__, 1, "Create %s", ("ext",), None)
    assert json.loads(formatter.format(record)) == {"level": "INFO", "message": "Create ext", "process": "test"}


def test_args() -> None:
    parser = ArgumentParser()
    add_args(parser)
    args = parser.parse_args(["--verbose", "--log-json"])
    assert args.verbose is True
    assert args.quiet is False
    assert args.log_json is True
