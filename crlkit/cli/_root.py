import logging
from typing import Optional, Tuple

import click

from crlkit.cli._ctx import CLIContext
from crlkit.cli.config import parse_cli_config
from crlkit.cli.runtime import DEFAULT_CONFIG_FILE, logging_setup
from crlkit.config.errors import ConfigurationError
from crlkit.config.logging import LogConfig, parse_logging_config
from crlkit.version import __version__

__all__ = ['cli_root']


def _read_config(config_file) -> Tuple[Optional[str], Optional[str]]:
    # returns the name of the configuration source and its contents
    if config_file is not None:
        try:
            return config_file.name, config_file.read()
        except IOError as e:
            raise click.ClickException(f"Failed to read configuration: {e}")
    try:
        with open(DEFAULT_CONFIG_FILE, 'r') as f:
            return DEFAULT_CONFIG_FILE, f.read()
    except FileNotFoundError:
        return None, None
    except IOError as e:
        raise click.ClickException(
            f"Failed to read {DEFAULT_CONFIG_FILE}: {e}"
        )


@click.group()
@click.version_option(prog_name='crlkit', version=__version__)
@click.option(
    '--config',
    help=(
        'YAML file to load configuration from '
        f'[default: {DEFAULT_CONFIG_FILE}]'
    ),
    required=False,
    type=click.File('r'),
)
@click.option(
    '--verbose',
    help='Log debug output and show stack traces',
    is_flag=True,
    default=False,
)
@click.pass_context
def _root(ctx: click.Context, config, verbose):
    source, config_text = _read_config(config)

    ctx_obj: CLIContext = ctx.ensure_object(CLIContext)
    if config_text is None:
        log_config = parse_logging_config({})
    else:
        try:
            root_config = parse_cli_config(config_text)
        except ConfigurationError as e:
            raise click.ClickException(f"Configuration problem: {e.msg}")
        ctx_obj.config = root_config.config
        log_config = root_config.log_config

    if verbose:
        log_config[None] = LogConfig(
            level=logging.DEBUG, output=log_config[None].output
        )
    logging_setup(log_config, verbose)

    if source is None:
        logging.debug('No configuration file found, using defaults.')
    else:
        logging.debug(f'Finished reading configuration from {source}.')


cli_root: click.Group = _root
