import logging

import click

__all__ = ['logger', 'readable_file', 'writable_file']

logger = logging.getLogger("cli")

readable_file = click.Path(exists=True, readable=True, dir_okay=False)
writable_file = click.Path(writable=True, dir_okay=False)
