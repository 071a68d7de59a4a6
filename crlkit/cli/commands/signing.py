import getpass
from typing import Optional

import click

from crlkit.cli._ctx import CLIContext
from crlkit.cli._root import cli_root
from crlkit.cli.runtime import crlkit_exception_manager
from crlkit.cli.utils import logger, readable_file, writable_file
from crlkit.certs import (
    load_cert_from_pemder,
    load_crl_from_pemder,
    load_private_key_from_pemder,
    load_public_key_info_from_pemder,
)

__all__ = ['verify_crl', 'sign_crl']


@cli_root.command(help='verify the signature on a CRL', name='verify')
@click.argument('crl_file', type=readable_file)
@click.option(
    '--issuer',
    help='certificate of the CRL issuer (PEM/DER)',
    required=False,
    type=readable_file,
)
@click.option(
    '--public-key',
    help='public key of the CRL issuer (PEM/DER SubjectPublicKeyInfo)',
    required=False,
    type=readable_file,
)
@click.pass_context
def verify_crl(ctx: click.Context, crl_file, issuer, public_key):
    if bool(issuer) == bool(public_key):
        raise click.ClickException(
            "Specify exactly one of --issuer and --public-key."
        )
    ctx_obj: CLIContext = ctx.obj
    with crlkit_exception_manager():
        crl = load_crl_from_pemder(crl_file, ctx_obj.processing_settings)
        if issuer:
            cert = load_cert_from_pemder(issuer)
            result = crl.verify(issuer_certificate=cert)
        else:
            result = crl.verify(
                public_key_info=load_public_key_info_from_pemder(public_key)
            )
    if result:
        click.echo("CRL signature is valid.")
    else:
        click.echo("CRL signature could not be validated.")
        ctx.exit(1)


def _read_passphrase(passfile, no_pass: bool) -> Optional[bytes]:
    if no_pass:
        return None
    if passfile is not None:
        with passfile:
            return passfile.readline().strip().encode('utf-8')
    # an empty answer at the prompt means the key is not encrypted
    entered = getpass.getpass(prompt='Key passphrase: ')
    return entered.encode('utf-8') if entered else None


@cli_root.command(help='sign a CRL with a PEM/DER private key', name='sign')
@click.argument('crl_file', type=readable_file)
@click.argument('key_file', type=readable_file)
@click.argument('outfile', type=writable_file)
@click.option(
    '--hash',
    'hash_algorithm',
    help='digest algorithm [default: from configuration, or sha256]',
    type=str,
)
@click.option('--pss', help='sign with RSASSA-PSS (RSA keys)', is_flag=True)
@click.option(
    '--passfile',
    help='read the key passphrase from this file instead of prompting',
    type=click.File('r'),
)
@click.option(
    '--no-pass',
    help='do not ask for a passphrase; the key is not encrypted',
    is_flag=True,
)
@click.pass_context
def sign_crl(
    ctx: click.Context,
    crl_file,
    key_file,
    outfile,
    hash_algorithm,
    pss,
    passfile,
    no_pass,
):
    settings = ctx.obj.processing_settings
    passphrase = _read_passphrase(passfile, no_pass)

    with crlkit_exception_manager():
        crl = load_crl_from_pemder(crl_file, settings)
        try:
            private_key = load_private_key_from_pemder(key_file, passphrase)
        except (ValueError, TypeError) as e:
            logger.error("Could not load private key", exc_info=e)
            raise click.ClickException(
                "Could not load private key; is the passphrase correct?"
            )
        crl.sign(
            private_key,
            hash_algorithm or settings.default_hash_algorithm,
            prefer_pss=pss or settings.prefer_pss,
        )
        logger.info(
            f"Signed CRL with {crl.signature_algorithm.algorithm}, "
            f"writing to {outfile}"
        )
        with open(outfile, 'wb') as outf:
            outf.write(crl.dump())
