import logging
import sys
from contextlib import contextmanager

import click

from crlkit.cli.utils import logger
from crlkit.config.errors import ConfigurationError
from crlkit.config.logging import LogConfig, StdLogOutput
from crlkit.errors import (
    CryptoEngineError,
    CRLError,
    DecodeError,
    EncodeError,
    UnsupportedAlgorithmError,
)

DEFAULT_CONFIG_FILE = 'crlkit.yml'

LOG_FORMAT_STRING = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class NoStackTraceFormatter(logging.Formatter):
    def formatException(self, ei) -> str:
        return ""  # pragma: nocover


def _handler_for(log_config: LogConfig, verbose: bool) -> logging.Handler:
    output = log_config.output
    if not isinstance(output, StdLogOutput):
        handler: logging.Handler = logging.FileHandler(output)
        handler.setFormatter(logging.Formatter(LOG_FORMAT_STRING))
        return handler
    stream = sys.stdout if output == StdLogOutput.STDOUT else sys.stderr
    handler = logging.StreamHandler(stream)
    # stack traces only go to the console in verbose mode
    formatter_cls = logging.Formatter if verbose else NoStackTraceFormatter
    handler.setFormatter(formatter_cls(LOG_FORMAT_STRING))
    return handler


def logging_setup(log_configs, verbose: bool):
    for module, log_config in log_configs.items():
        module_logger = logging.getLogger(module)
        module_logger.setLevel(log_config.level)
        module_logger.addHandler(_handler_for(log_config, verbose))


# most specific first
_ERROR_PREFIXES = (
    (DecodeError, "Failed to read input"),
    (EncodeError, "Failed to encode CRL"),
    (UnsupportedAlgorithmError, "Unsupported algorithm"),
    (CryptoEngineError, "Cryptographic operation failed"),
    (CRLError, "Error while processing CRL"),
)


def _describe(exc: Exception) -> str:
    if isinstance(exc, ConfigurationError):
        return f"Configuration problem: {exc.msg}"
    for exc_type, prefix in _ERROR_PREFIXES:
        if isinstance(exc, exc_type):
            return f"{prefix}: {exc.failure_message}"
    return "Generic processing error."


@contextmanager
def crlkit_exception_manager():
    """
    Turn library errors raised while running a command into
    :class:`click.ClickException` with a readable message.
    The original error is logged.
    """
    try:
        yield
    except click.ClickException:
        raise
    except Exception as e:
        msg = _describe(e)
        logger.error(msg, exc_info=e)
        raise click.ClickException(msg) from e
