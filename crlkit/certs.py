"""
Minimal certificate handling, and utilities to load certificates, CRLs and
keys from PEM or DER files.

Only the subject, issuer, serial number and public key of a certificate
are relevant to CRL processing; no validation of any kind is performed here.
"""

import io
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterator, Optional, Tuple

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from pyasn1_modules import pem, rfc5280

from .codec import decode_asn1
from .errors import DecodeError
from .model import PublicKeyInfo
from .names import Name

if TYPE_CHECKING:
    from .config import CRLProcessingSettings
    from .crl import CertificateList

__all__ = [
    'CertificateInfo',
    'load_cert_from_pemder',
    'load_certs_from_pemder_data',
    'load_crl_from_pemder',
    'load_crl_from_pemder_data',
    'load_public_key_info_from_pemder',
    'load_private_key_from_pemder',
    'load_private_key_from_pemder_data',
]

CERTIFICATE_MARKERS = (
    '-----BEGIN CERTIFICATE-----',
    '-----END CERTIFICATE-----',
)
CRL_MARKERS = ('-----BEGIN X509 CRL-----', '-----END X509 CRL-----')
PUBLIC_KEY_MARKERS = ('-----BEGIN PUBLIC KEY-----', '-----END PUBLIC KEY-----')


@dataclass(frozen=True)
class CertificateInfo:
    """
    The parts of an X.509 certificate that matter for CRL processing.
    """

    subject: Name
    issuer: Name
    serial_number: int
    public_key_info: PublicKeyInfo

    @classmethod
    def load(cls, data: bytes) -> 'CertificateInfo':
        """
        Read a DER-encoded certificate.
        """
        cert = decode_asn1(data, rfc5280.Certificate(), 'Certificate')
        tbs = cert['tbsCertificate']
        return cls(
            subject=Name.from_asn1(tbs['subject']),
            issuer=Name.from_asn1(tbs['issuer']),
            serial_number=int(tbs['serialNumber']),
            public_key_info=PublicKeyInfo.from_asn1(
                tbs['subjectPublicKeyInfo']
            ),
        )

    @classmethod
    def from_cryptography(cls, cert: x509.Certificate) -> 'CertificateInfo':
        return cls.load(cert.public_bytes(serialization.Encoding.DER))


def detect_pem(data: bytes) -> bool:
    return data.find(b'-----BEGIN') != -1


def _unarmor(data: bytes, markers: Tuple[str, str]) -> Iterator[bytes]:
    try:
        text = data.decode('ascii')
    except UnicodeDecodeError as e:
        raise DecodeError(f"PEM data is not ASCII: {e}") from e
    stream = io.StringIO(text)
    while True:
        try:
            idx, der = pem.readPemBlocksFromFile(stream, markers)
        except ValueError as e:
            raise DecodeError(f"Invalid base64 data in PEM block: {e}") from e
        if idx == -1:
            return
        if not der:
            raise DecodeError(f"Unterminated or empty PEM block: {markers[0]}")
        yield der


def load_certs_from_pemder_data(cert_data_bytes: bytes):
    """
    Load PEM/DER-encoded certificates from binary data.

    :param cert_data_bytes:
        ``bytes`` object from which to extract certificates.
    :return:
        A generator producing :class:`CertificateInfo` objects.
    """
    if detect_pem(cert_data_bytes):
        for der in _unarmor(cert_data_bytes, CERTIFICATE_MARKERS):
            yield CertificateInfo.load(der)
    else:
        yield CertificateInfo.load(cert_data_bytes)


def load_cert_from_pemder(cert_file) -> CertificateInfo:
    """
    Load a single PEM/DER-encoded certificate from a file.

    :param cert_file:
        A file name.
    :return:
        A :class:`CertificateInfo` object.
    """
    with open(cert_file, 'rb') as f:
        cert_data_bytes = f.read()
    certs = list(load_certs_from_pemder_data(cert_data_bytes))
    if len(certs) != 1:
        raise DecodeError(
            f"Number of certs in {cert_file} should be exactly 1"
        )
    return certs[0]


def load_crl_from_pemder_data(
    crl_bytes: bytes, settings: Optional['CRLProcessingSettings'] = None
) -> 'CertificateList':
    from .crl import CertificateList

    if detect_pem(crl_bytes):
        crls = list(_unarmor(crl_bytes, CRL_MARKERS))
        if len(crls) != 1:
            raise DecodeError("Expected exactly one CRL in PEM data")
        crl_bytes = crls[0]
    return CertificateList.load(crl_bytes, settings)


def load_crl_from_pemder(
    crl_file, settings: Optional['CRLProcessingSettings'] = None
) -> 'CertificateList':
    """
    Load a PEM/DER-encoded CRL from a file.

    :param crl_file:
        A file name.
    :param settings:
        Processing settings to apply when decoding.
    :return:
        A :class:`~crlkit.crl.CertificateList` object.
    """
    with open(crl_file, 'rb') as f:
        crl_bytes = f.read()
    return load_crl_from_pemder_data(crl_bytes, settings)


def load_public_key_info_from_pemder(key_file) -> PublicKeyInfo:
    """
    Load a PEM/DER-encoded subject public key info structure from a file.
    """
    with open(key_file, 'rb') as f:
        key_bytes = f.read()
    if detect_pem(key_bytes):
        blocks = list(_unarmor(key_bytes, PUBLIC_KEY_MARKERS))
        if len(blocks) != 1:
            raise DecodeError(
                f"Expected exactly one public key in {key_file}"
            )
        key_bytes = blocks[0]
    return PublicKeyInfo.load(key_bytes)


def load_private_key_from_pemder(key_file, passphrase: Optional[bytes]):
    """
    Load a PEM/DER-encoded private key from a file.

    :param key_file:
        File to read the key from.
    :param passphrase:
        Key passphrase.
    :return:
        A pyca/cryptography private key object.
    """
    with open(key_file, 'rb') as f:
        key_bytes = f.read()
    return load_private_key_from_pemder_data(key_bytes, passphrase=passphrase)


def load_private_key_from_pemder_data(
    key_bytes: bytes, passphrase: Optional[bytes]
):
    """
    Load a PEM/DER-encoded private key from binary data.

    :param key_bytes:
        ``bytes`` object to read the key from.
    :param passphrase:
        Key passphrase.
    :return:
        A pyca/cryptography private key object.
    """
    load_fun = (
        serialization.load_pem_private_key
        if detect_pem(key_bytes)
        else serialization.load_der_private_key
    )
    return load_fun(key_bytes, password=passphrase)
