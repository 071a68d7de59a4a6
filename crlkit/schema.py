"""
ASN.1 structure declarations for certificate revocation lists, as defined in
:rfc:`5280`, section 5.1.

These are pure pyasn1 schema objects: they are matched against decoded
BER/DER data by :mod:`crlkit.codec`, and used as templates when building
values for encoding.

The outer :class:`CertificateList` declares the signed body as an untagged
``ANY``, which makes the decoder hand back the complete encoded span of the
body (header included). That span is what the signature covers, so it is
retained as-is instead of being re-derived from the decoded fields.
"""

from pyasn1.type import namedtype, tag, univ
from pyasn1_modules import rfc5280

__all__ = [
    'CRL_EXTENSIONS_TAG',
    'CRLExtensions',
    'RevokedCertificate',
    'RevokedCertificates',
    'TBSCertList',
    'CertificateList',
    'ECDSASigValue',
]


CRL_EXTENSIONS_TAG = tag.Tag(tag.tagClassContext, tag.tagFormatConstructed, 0)


class CRLExtensions(rfc5280.Extensions):
    tagSet = rfc5280.Extensions.tagSet.tagExplicitly(CRL_EXTENSIONS_TAG)


class RevokedCertificate(univ.Sequence):
    componentType = namedtype.NamedTypes(
        namedtype.NamedType(
            'userCertificate', rfc5280.CertificateSerialNumber()
        ),
        namedtype.NamedType('revocationDate', rfc5280.Time()),
        namedtype.OptionalNamedType(
            'crlEntryExtensions', rfc5280.Extensions()
        ),
    )


class RevokedCertificates(univ.SequenceOf):
    componentType = RevokedCertificate()


class TBSCertList(univ.Sequence):
    componentType = namedtype.NamedTypes(
        namedtype.OptionalNamedType('version', rfc5280.Version()),
        namedtype.NamedType('signature', rfc5280.AlgorithmIdentifier()),
        namedtype.NamedType('issuer', rfc5280.Name()),
        namedtype.NamedType('thisUpdate', rfc5280.Time()),
        namedtype.OptionalNamedType('nextUpdate', rfc5280.Time()),
        namedtype.OptionalNamedType(
            'revokedCertificates', RevokedCertificates()
        ),
        namedtype.OptionalNamedType('crlExtensions', CRLExtensions()),
    )


class CertificateList(univ.Sequence):
    componentType = namedtype.NamedTypes(
        namedtype.NamedType('tbsCertList', univ.Any()),
        namedtype.NamedType(
            'signatureAlgorithm', rfc5280.AlgorithmIdentifier()
        ),
        namedtype.NamedType('signatureValue', univ.BitString()),
    )


class ECDSASigValue(univ.Sequence):
    componentType = namedtype.NamedTypes(
        namedtype.NamedType('r', univ.Integer()),
        namedtype.NamedType('s', univ.Integer()),
    )
