from datetime import datetime, timedelta, timezone
from functools import lru_cache

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.x509.oid import NameOID

from crlkit.certs import CertificateInfo
from crlkit.crl import CertificateList
from crlkit.extensions import CRL_NUMBER
from crlkit.model import (
    AlgorithmIdentifier,
    Extension,
    PublicKeyInfo,
    RevokedCertificate,
    TbsCertList,
    Time,
)
from crlkit.names import Name

THIS_UPDATE = datetime(2024, 1, 1, tzinfo=timezone.utc)
NEXT_UPDATE = datetime(2024, 2, 1, tzinfo=timezone.utc)
REVOCATION_DATE = datetime(2023, 12, 15, 10, 30, tzinfo=timezone.utc)

ISSUER_ATTRS = (
    ('country_name', 'BE'),
    ('organization_name', 'Example Org'),
    ('common_name', 'Example CA'),
)
OTHER_ISSUER_ATTRS = (
    ('country_name', 'BE'),
    ('organization_name', 'Example Org'),
    ('common_name', 'Other CA'),
)

ISSUER = Name.build(ISSUER_ATTRS)
OTHER_ISSUER = Name.build(OTHER_ISSUER_ATTRS)

SHA256_RSA = AlgorithmIdentifier('1.2.840.113549.1.1.11', b'\x05\x00')

# DER INTEGER 5, to use as a CRL number
CRL_NUMBER_VALUE = b'\x02\x01\x05'
# DER ENUMERATED keyCompromise
KEY_COMPROMISE_VALUE = b'\x0a\x01\x01'

_PYCA_NAME_OIDS = {
    'country_name': NameOID.COUNTRY_NAME,
    'organization_name': NameOID.ORGANIZATION_NAME,
    'common_name': NameOID.COMMON_NAME,
}


@lru_cache
def rsa_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@lru_cache
def other_rsa_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@lru_cache
def ec_key(curve_name='secp256r1'):
    curve = {'secp256r1': ec.SECP256R1, 'secp384r1': ec.SECP384R1}[curve_name]
    return ec.generate_private_key(curve())


def spki_for(private_key) -> PublicKeyInfo:
    return PublicKeyInfo.load(
        private_key.public_key().public_bytes(
            serialization.Encoding.DER,
            serialization.PublicFormat.SubjectPublicKeyInfo,
        )
    )


def pyca_name(attrs) -> x509.Name:
    return x509.Name(
        [x509.NameAttribute(_PYCA_NAME_OIDS[k], v) for k, v in attrs]
    )


def build_cert(
    serial, subject_key, issuer_key, subject_attrs, issuer_attrs=ISSUER_ATTRS
) -> x509.Certificate:
    return (
        x509.CertificateBuilder()
        .subject_name(pyca_name(subject_attrs))
        .issuer_name(pyca_name(issuer_attrs))
        .public_key(subject_key.public_key())
        .serial_number(serial)
        .not_valid_before(THIS_UPDATE)
        .not_valid_after(THIS_UPDATE + timedelta(days=365))
        .sign(issuer_key, hashes.SHA256())
    )


def issuer_cert(issuer_key=None) -> x509.Certificate:
    issuer_key = issuer_key or rsa_key()
    return build_cert(1, issuer_key, issuer_key, ISSUER_ATTRS)


def issuer_cert_info(issuer_key=None) -> CertificateInfo:
    return CertificateInfo.from_cryptography(issuer_cert(issuer_key))


def leaf_cert_info(serial, issuer_attrs=ISSUER_ATTRS) -> CertificateInfo:
    cert = build_cert(
        serial,
        other_rsa_key(),
        rsa_key(),
        (('common_name', f'Leaf {serial}'),),
        issuer_attrs=issuer_attrs,
    )
    return CertificateInfo.from_cryptography(cert)


def build_pyca_crl(
    issuer_key, hash_algorithm=None, revoked=(), crl_number=None
) -> x509.CertificateRevocationList:
    builder = (
        x509.CertificateRevocationListBuilder()
        .issuer_name(pyca_name(ISSUER_ATTRS))
        .last_update(THIS_UPDATE)
        .next_update(NEXT_UPDATE)
    )
    for serial, date in revoked:
        builder = builder.add_revoked_certificate(
            x509.RevokedCertificateBuilder()
            .serial_number(serial)
            .revocation_date(date)
            .build()
        )
    if crl_number is not None:
        builder = builder.add_extension(
            x509.CRLNumber(crl_number), critical=False
        )
    return builder.sign(issuer_key, hash_algorithm or hashes.SHA256())


def build_tbs(
    revoked=None,
    crl_extensions=None,
    version=None,
    next_update=True,
    signature=None,
    issuer=ISSUER,
) -> TbsCertList:
    if revoked is not None:
        revoked = [
            (
                entry
                if isinstance(entry, RevokedCertificate)
                else RevokedCertificate(entry, Time.for_moment(REVOCATION_DATE))
            )
            for entry in revoked
        ]
    if version is None:
        version = 2 if crl_extensions is not None else 1
    return TbsCertList(
        issuer=issuer,
        this_update=Time.for_moment(THIS_UPDATE),
        signature=signature,
        version=version,
        next_update=Time.for_moment(NEXT_UPDATE) if next_update else None,
        revoked_certificates=revoked,
        crl_extensions=crl_extensions,
    )


def unsigned_crl(**kwargs) -> CertificateList:
    return CertificateList(tbs=build_tbs(**kwargs))


def crl_number_extension(critical=False) -> Extension:
    return Extension(CRL_NUMBER, CRL_NUMBER_VALUE, critical=critical)


def signed_crl(private_key=None, **kwargs) -> CertificateList:
    kwargs.setdefault('revoked', [42])
    kwargs.setdefault('crl_extensions', [crl_number_extension()])
    crl = unsigned_crl(**kwargs)
    crl.sign(private_key or rsa_key())
    return crl


def der_header(length: int, tag: int = 0x30) -> bytes:
    if length < 0x80:
        return bytes([tag, length])
    length_bytes = length.to_bytes((length.bit_length() + 7) // 8, 'big')
    return bytes([tag, 0x80 | len(length_bytes)]) + length_bytes


def split_header(data: bytes):
    """
    Split a DER TLV into its header and its contents.
    """
    if data[1] < 0x80:
        header_len = 2
    else:
        header_len = 2 + (data[1] & 0x7F)
    return data[:header_len], data[header_len:]
