import base64
import getpass
import json

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import serialization

from crlkit.algorithms import RSASSA_PSS
from crlkit.cli import cli_root
from crlkit.crl import CertificateList
from crlkit.extensions import CRL_REASON
from crlkit.model import Extension, RevokedCertificate, Time
from crlkit.version import __version__

from .common import (
    KEY_COMPROMISE_VALUE,
    OTHER_ISSUER_ATTRS,
    REVOCATION_DATE,
    build_cert,
    issuer_cert,
    other_rsa_key,
    rsa_key,
    signed_crl,
    spki_for,
)
from .conftest import (
    INPUT_PATH,
    ISSUER_CERT_PATH,
    ISSUER_KEY_PATH,
    ISSUER_PUBKEY_PATH,
    _const,
    _write_config,
)


def _write(fname, data: bytes):
    with open(fname, 'wb') as outf:
        outf.write(data)


def _pem_armor(der: bytes, label: str) -> bytes:
    b64 = base64.encodebytes(der).decode('ascii')
    return f'-----BEGIN {label}-----\n{b64}-----END {label}-----\n'.encode(
        'ascii'
    )


def _write_leaf_cert(fname, serial, issuer_attrs=None):
    kwargs = {'issuer_attrs': issuer_attrs} if issuer_attrs else {}
    cert = build_cert(
        serial,
        other_rsa_key(),
        rsa_key(),
        (('common_name', f'Leaf {serial}'),),
        **kwargs,
    )
    _write(fname, cert.public_bytes(serialization.Encoding.PEM))


def _write_private_key(fname, key, passphrase=None):
    encryption = (
        serialization.BestAvailableEncryption(passphrase)
        if passphrase
        else serialization.NoEncryption()
    )
    _write(
        fname,
        key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            encryption,
        ),
    )


@pytest.fixture
def issuer_files(cli_runner):
    key = rsa_key()
    _write_private_key(ISSUER_KEY_PATH, key)
    _write(
        ISSUER_PUBKEY_PATH,
        key.public_key().public_bytes(
            serialization.Encoding.PEM,
            serialization.PublicFormat.SubjectPublicKeyInfo,
        ),
    )
    _write(
        ISSUER_CERT_PATH,
        issuer_cert(key).public_bytes(serialization.Encoding.PEM),
    )
    _write(INPUT_PATH, signed_crl(key, revoked=[42]).dump())
    _write_leaf_cert('revoked.crt', 42)
    _write_leaf_cert('good.crt', 7)
    _write_leaf_cert('foreign.crt', 42, issuer_attrs=OTHER_ISSUER_ATTRS)
    return cli_runner


def test_version(cli_runner):
    result = cli_runner.invoke(cli_root, ['--version'])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_dump(issuer_files):
    result = issuer_files.invoke(cli_root, ['dump', INPUT_PATH])
    assert not result.exception, result.output
    dumped = json.loads(result.stdout)
    assert dumped['version'] == 2
    assert dumped['revoked_certificates'][0]['serial_number'] == 42
    assert 'parsed' not in dumped['crl_extensions'][0]


def test_dump_pem(issuer_files):
    with open(INPUT_PATH, 'rb') as inf:
        der = inf.read()
    _write('input.pem', _pem_armor(der, 'X509 CRL'))
    result = issuer_files.invoke(cli_root, ['dump', 'input.pem'])
    assert not result.exception, result.output
    assert json.loads(result.stdout)['tbs'] == (
        CertificateList.load(der).tbs_bytes.hex()
    )


def test_dump_with_config(issuer_files):
    _write_config(
        """
        processing:
            understood-extensions: [crl_number]
        """
    )
    result = issuer_files.invoke(cli_root, ['dump', INPUT_PATH])
    assert not result.exception, result.output
    assert json.loads(result.stdout)['crl_extensions'][0]['parsed'] == 5


def test_dump_with_explicit_config(issuer_files):
    _write_config(
        """
        processing:
            understood-extensions: crl_number
        logging:
            root-level: DEBUG
            root-output: crlkit.log
        """,
        fname='other.yml',
    )
    result = issuer_files.invoke(
        cli_root, ['--config', 'other.yml', 'dump', INPUT_PATH]
    )
    assert not result.exception, result.output
    assert json.loads(result.stdout)['crl_extensions'][0]['parsed'] == 5
    with open('crlkit.log', 'r') as logf:
        assert 'Finished reading configuration' in logf.read()


def test_bad_config(issuer_files):
    _write_config("processing:\n    understood-extensions: [nonsense]\n")
    result = issuer_files.invoke(cli_root, ['dump', INPUT_PATH])
    assert result.exit_code == 1
    assert 'Configuration problem' in result.output


def test_dump_garbage(cli_runner):
    _write(INPUT_PATH, b'\x30\x03\x02\x01\x00')
    result = cli_runner.invoke(cli_root, ['dump', INPUT_PATH])
    assert result.exit_code == 1
    assert 'Failed to read input' in result.output


@pytest.mark.parametrize(
    'args',
    [
        ['--issuer', ISSUER_CERT_PATH],
        ['--public-key', ISSUER_PUBKEY_PATH],
    ],
)
def test_verify(issuer_files, args):
    result = issuer_files.invoke(cli_root, ['verify', INPUT_PATH, *args])
    assert not result.exception, result.output
    assert 'signature is valid' in result.output


def test_verify_verbose(issuer_files):
    result = issuer_files.invoke(
        cli_root,
        ['--verbose', 'verify', INPUT_PATH, '--issuer', ISSUER_CERT_PATH],
    )
    assert not result.exception, result.output


def test_verify_wrong_key(issuer_files):
    _write(
        'other.pub.pem',
        other_rsa_key()
        .public_key()
        .public_bytes(
            serialization.Encoding.PEM,
            serialization.PublicFormat.SubjectPublicKeyInfo,
        ),
    )
    result = issuer_files.invoke(
        cli_root, ['verify', INPUT_PATH, '--public-key', 'other.pub.pem']
    )
    assert result.exit_code == 1
    assert 'could not be validated' in result.output


@pytest.mark.parametrize(
    'args',
    [
        [],
        ['--issuer', ISSUER_CERT_PATH, '--public-key', ISSUER_PUBKEY_PATH],
    ],
)
def test_verify_key_source_required(issuer_files, args):
    result = issuer_files.invoke(cli_root, ['verify', INPUT_PATH, *args])
    assert result.exit_code == 1
    assert 'exactly one' in result.output


@pytest.mark.parametrize(
    'cert_file,exit_code,message',
    [
        ('revoked.crt', 1, 'was revoked on 2023-12-15T10:30:00+00:00.'),
        ('good.crt', 0, 'is not revoked'),
        ('foreign.crt', 2, 'not issued by the CRL issuer'),
    ],
)
def test_check(issuer_files, cert_file, exit_code, message):
    result = issuer_files.invoke(cli_root, ['check', INPUT_PATH, cert_file])
    assert result.exit_code == exit_code, result.output
    assert message in result.output


def test_check_with_reason(issuer_files):
    entry = RevokedCertificate(
        42,
        Time.for_moment(REVOCATION_DATE),
        entry_extensions=[Extension(CRL_REASON, KEY_COMPROMISE_VALUE)],
    )
    _write(INPUT_PATH, signed_crl(rsa_key(), revoked=[entry]).dump())
    _write_config("processing:\n    understood-extensions: [crl_reason]\n")
    result = issuer_files.invoke(cli_root, ['check', INPUT_PATH, 'revoked.crt'])
    assert result.exit_code == 1, result.output
    assert '(reason: key_compromise)' in result.output


def _check_signed_output(fname='out.crl'):
    with open(fname, 'rb') as inf:
        data = inf.read()
    pyca_crl = x509.load_der_x509_crl(data)
    assert pyca_crl.is_signature_valid(rsa_key().public_key())
    return CertificateList.load(data)


def test_sign(issuer_files):
    result = issuer_files.invoke(
        cli_root,
        ['sign', INPUT_PATH, ISSUER_KEY_PATH, 'out.crl', '--no-pass'],
    )
    assert not result.exception, result.output
    crl = _check_signed_output()
    assert crl.signature_algorithm.algorithm == '1.2.840.113549.1.1.11'


def test_sign_pss(issuer_files):
    result = issuer_files.invoke(
        cli_root,
        [
            'sign',
            INPUT_PATH,
            ISSUER_KEY_PATH,
            'out.crl',
            '--no-pass',
            '--pss',
            '--hash',
            'sha384',
        ],
    )
    assert not result.exception, result.output
    with open('out.crl', 'rb') as inf:
        crl = CertificateList.load(inf.read())
    assert crl.signature_algorithm.algorithm == RSASSA_PSS
    assert crl.verify(public_key_info=spki_for(rsa_key()))


def test_sign_hash_from_config(issuer_files):
    _write_config("processing:\n    default-hash-algorithm: sha512\n")
    result = issuer_files.invoke(
        cli_root,
        ['sign', INPUT_PATH, ISSUER_KEY_PATH, 'out.crl', '--no-pass'],
    )
    assert not result.exception, result.output
    crl = _check_signed_output()
    assert crl.signature_algorithm.algorithm == '1.2.840.113549.1.1.13'


def test_sign_with_passfile(issuer_files):
    _write_private_key('encrypted.key.pem', rsa_key(), b'secret')
    with open('passfile', 'w') as passf:
        passf.write('secret\n')
    result = issuer_files.invoke(
        cli_root,
        [
            'sign',
            INPUT_PATH,
            'encrypted.key.pem',
            'out.crl',
            '--passfile',
            'passfile',
        ],
    )
    assert not result.exception, result.output
    _check_signed_output()


def test_sign_with_stdin_pass(issuer_files, monkeypatch):
    monkeypatch.setattr(getpass, 'getpass', _const('secret'))
    _write_private_key('encrypted.key.pem', rsa_key(), b'secret')
    result = issuer_files.invoke(
        cli_root, ['sign', INPUT_PATH, 'encrypted.key.pem', 'out.crl']
    )
    assert not result.exception, result.output
    _check_signed_output()


def test_sign_wrong_pass(issuer_files, monkeypatch):
    monkeypatch.setattr(getpass, 'getpass', _const('wrong'))
    _write_private_key('encrypted.key.pem', rsa_key(), b'secret')
    result = issuer_files.invoke(
        cli_root, ['sign', INPUT_PATH, 'encrypted.key.pem', 'out.crl']
    )
    assert result.exit_code == 1
    assert 'Could not load private key' in result.output


def test_sign_unsupported_hash(issuer_files):
    result = issuer_files.invoke(
        cli_root,
        [
            'sign',
            INPUT_PATH,
            ISSUER_KEY_PATH,
            'out.crl',
            '--no-pass',
            '--hash',
            'md5',
        ],
    )
    assert result.exit_code == 1
    assert 'Unsupported algorithm' in result.output
