import json

import click

from crlkit.cli._ctx import CLIContext
from crlkit.cli._root import cli_root
from crlkit.cli.runtime import crlkit_exception_manager
from crlkit.cli.utils import readable_file
from crlkit.certs import load_cert_from_pemder, load_crl_from_pemder

__all__ = ['dump_crl', 'check_cert']


@cli_root.command(help='print the contents of a CRL as JSON', name='dump')
@click.argument('crl_file', type=readable_file)
@click.pass_context
def dump_crl(ctx: click.Context, crl_file):
    ctx_obj: CLIContext = ctx.obj
    with crlkit_exception_manager():
        crl = load_crl_from_pemder(crl_file, ctx_obj.processing_settings)
        click.echo(json.dumps(crl.to_dict(), indent=2))


@cli_root.command(
    help='check whether a certificate appears on a CRL', name='check'
)
@click.argument('crl_file', type=readable_file)
@click.argument('cert_file', type=readable_file)
@click.pass_context
def check_cert(ctx: click.Context, crl_file, cert_file):
    ctx_obj: CLIContext = ctx.obj
    with crlkit_exception_manager():
        crl = load_crl_from_pemder(crl_file, ctx_obj.processing_settings)
        cert = load_cert_from_pemder(cert_file)
        entry = crl.find_revoked_entry(cert)
    if cert.issuer != crl.tbs.issuer:
        click.echo(
            f"Certificate was not issued by the CRL issuer "
            f"({crl.tbs.issuer}); no conclusion possible."
        )
        ctx.exit(2)
    if entry is None:
        click.echo(f"Serial number {cert.serial_number} is not revoked.")
        return
    msg = (
        f"Serial number {cert.serial_number} was revoked on "
        f"{entry.revocation_date.isoformat()}"
    )
    if entry.reason is not None:
        msg += f" (reason: {entry.reason})"
    click.echo(msg + '.')
    ctx.exit(1)
