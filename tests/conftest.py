import logging

import pytest
from click.testing import CliRunner

from crlkit.cli.runtime import LOG_FORMAT_STRING

INPUT_PATH = 'input.crl'
ISSUER_CERT_PATH = 'issuer.crt'
ISSUER_KEY_PATH = 'issuer.key.pem'
ISSUER_PUBKEY_PATH = 'issuer.pub.pem'


def _const(v):
    def f(*_args, **_kwargs):
        return v

    return f


def _write_config(config: str, fname='crlkit.yml'):
    with open(fname, 'w') as outf:
        outf.write(config)


@pytest.fixture
def cli_runner():
    root_logger = logging.getLogger()
    level_before = root_logger.level

    runner = CliRunner()
    with runner.isolated_filesystem():
        yield runner

    # the CLI attaches handlers to the root logger on every invocation
    for handler in list(root_logger.handlers):
        if getattr(handler.formatter, '_fmt', None) == LOG_FORMAT_STRING:
            root_logger.removeHandler(handler)
            handler.close()
    root_logger.setLevel(level_before)
