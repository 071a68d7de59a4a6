"""
Parsing of the ``logging`` section in the CLI configuration file.

Example::

    logging:
        root-level: INFO
        root-output: stderr
        by-module:
            crlkit.signing:
                level: DEBUG
                output: crlkit-signing.log
"""

import enum
import logging
from dataclasses import dataclass
from typing import Dict, Optional, Union

from .errors import ConfigurationError

__all__ = ['LogConfig', 'StdLogOutput', 'parse_logging_config']

DEFAULT_ROOT_LOGGER_LEVEL = logging.INFO

LogLevel = Union[int, str]


class StdLogOutput(enum.Enum):
    STDERR = enum.auto()
    STDOUT = enum.auto()


def _parse_level(value) -> LogLevel:
    if not isinstance(value, (int, str)):
        raise ConfigurationError(
            f"Log levels must be int or str, not {type(value)}"
        )
    return value


def _parse_output(value) -> Union[StdLogOutput, str]:
    if not isinstance(value, str):
        raise ConfigurationError("Log output must be specified as a string.")
    try:
        return StdLogOutput[value.upper()]
    except KeyError:
        # anything else is a file name
        return value


@dataclass(frozen=True)
class LogConfig:
    level: LogLevel
    """
    Logging level, either a level name or a number as used by the
    :mod:`logging` module.
    """

    output: Union[StdLogOutput, str]
    """
    Where to send log output: standard error, standard output or a file name.
    """

    @classmethod
    def for_module(cls, module: str, settings) -> 'LogConfig':
        if not isinstance(settings, dict):
            raise ConfigurationError(
                f"Logging config for '{module}' should be a dict"
            )
        if 'level' not in settings:
            raise ConfigurationError(
                f"Logging config for '{module}' does not define a log level."
            )
        output = settings.get('output')
        return cls(
            level=_parse_level(settings['level']),
            output=(
                StdLogOutput.STDERR if output is None else _parse_output(output)
            ),
        )


def parse_logging_config(log_config_spec) -> Dict[Optional[str], LogConfig]:
    """
    Parse the ``logging`` section of a configuration file.

    :param log_config_spec:
        A dictionary with optional ``root-level``, ``root-output`` and
        ``by-module`` keys.
    :return:
        A dictionary mapping logger names to :class:`LogConfig` objects.
        The ``None`` key holds the settings for the root logger.
    """
    if not isinstance(log_config_spec, dict):
        raise ConfigurationError('logging config should be a dictionary')

    root_level = log_config_spec.get('root-level', DEFAULT_ROOT_LOGGER_LEVEL)
    root_output = log_config_spec.get('root-output')
    result: Dict[Optional[str], LogConfig] = {
        None: LogConfig(
            level=_parse_level(root_level),
            output=(
                StdLogOutput.STDERR
                if root_output is None
                else _parse_output(root_output)
            ),
        )
    }

    by_module = log_config_spec.get('by-module', {})
    if not isinstance(by_module, dict):
        raise ConfigurationError('logging.by-module should be a dict')
    for module, settings in by_module.items():
        if not isinstance(module, str):
            raise ConfigurationError(
                "Keys in logging.by-module should be strings"
            )
        result[module] = LogConfig.for_module(module, settings)
    return result
