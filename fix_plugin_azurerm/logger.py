import json
import os
from argparse import ArgumentParser
from logging import (
    basicConfig,
    getLogger,
    DEBUG,
    INFO,
    WARNING,
    CRITICAL,
    StreamHandler,
    Formatter,
    LogRecord,
)
from typing import Dict, Mapping, Optional

from fix_plugin_azurerm.types import Json

LOGGER_NAME = "fix.plugins.azurerm"


def add_args(arg_parser: ArgumentParser) -> None:
    group = arg_parser.add_mutually_exclusive_group()
    group.add_argument(
        "--verbose",
        "-v",
        help="Verbose logging",
        dest="verbose",
        action="store_true",
        default=False,
    )
    group.add_argument(
        "--quiet",
        help="Only log errors",
        dest="quiet",
        action="store_true",
        default=False,
    )
    arg_parser.add_argument(
        "--log-json",
        help="Log in json format",
        dest="log_json",
        action="store_true",
        default=False,
    )


class JsonFormatter(Formatter):
    """
    Simple json log formatter.
    Inspired by: https://stackoverflow.com/questions/50144628/python-logging-into-file-as-a-dictionary-or-json
    """

    def __init__(
        self,
        fmt_dict: Mapping[str, str],
        time_format: str = "%Y-%m-%dT%H:%M:%S",
        static_values: Optional[Dict[str, str]] = None,
    ):
        super().__init__()
        self.fmt_dict = fmt_dict
        self.time_format = time_format
        self.static_values = static_values or {}
        self.__use_time = "asctime" in self.fmt_dict.values()

    def usesTime(self) -> bool:  # noqa: N802
        return self.__use_time

    def formatJsonMessage(self, record: LogRecord) -> Json:  # noqa: N802
        record.message = record.getMessage()
        if self.__use_time:
            record.asctime = self.formatTime(record, self.time_format)

        message_dict = {fmt_key: record.__dict__[fmt_val] for fmt_key, fmt_val in self.fmt_dict.items()}
        message_dict.update(self.static_values)

        if record.exc_info and not record.exc_text:
            record.exc_text = self.formatException(record.exc_info)
        if record.exc_text:
            message_dict["exception"] = record.exc_text
        return message_dict

    def format(self, record: LogRecord) -> str:
        return json.dumps(self.formatJsonMessage(record), default=str)


def setup_logger(
    proc: str,
    *,
    force: bool = True,
    verbose: bool = False,
    quiet: bool = False,
    json_format: bool = False,
) -> None:
    # override log output via env var
    plain_text = os.environ.get("FIX_LOG_TEXT", "false").lower() == "true"
    if json_format and not plain_text:
        handler = StreamHandler()
        formatter = JsonFormatter(
            {
                "timestamp": "asctime",
                "level": "levelname",
                "message": "message",
                "logger": "name",
            },
            static_values={"process": proc},
        )
        handler.setFormatter(formatter)
        basicConfig(handlers=[handler], force=force)
    else:
        log_format = f"%(asctime)s|{proc}|%(levelname)5s|%(name)s  %(message)s"
        basicConfig(format=log_format, datefmt="%y-%m-%d %H:%M:%S", force=force)

    logger = getLogger(LOGGER_NAME)
    if verbose or os.environ.get("FIX_VERBOSE", "false").lower() == "true":
        logger.setLevel(DEBUG)
    elif quiet or os.environ.get("FIX_QUIET", "false").lower() == "true":
        getLogger().setLevel(WARNING)
        logger.setLevel(CRITICAL)
    else:
        logger.setLevel(INFO)
