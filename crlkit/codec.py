"""
Conversion between pyasn1 values matching the declarations in
:mod:`crlkit.schema` and the typed model in :mod:`crlkit.model`.

The encoded signed body of a decoded CRL is retained verbatim: signatures are
computed over an exact byte range, and a semantically equivalent re-encoding
is not guaranteed to reproduce it (BER input being the obvious example).
A fresh encoding is only produced on request, typically when signing.
"""

import logging
from datetime import datetime
from typing import TYPE_CHECKING, List, Mapping, Optional

from pyasn1.codec.ber import decoder as ber_decoder
from pyasn1.error import PyAsn1Error, SubstrateUnderrunError
from pyasn1.type import univ
from pyasn1_modules import rfc5280

from . import schema
from .asn1_util import der_encode, get_optional
from .errors import DecodeError, EncodeError, SchemaMismatchError
from .extensions import ExtensionInterpreter, extension_name, interpret_value
from .model import (
    DEFAULT_VERSION,
    AlgorithmIdentifier,
    Extension,
    RevokedCertificate,
    TbsCertList,
    Time,
)
from .names import Name

if TYPE_CHECKING:
    from .config import CRLProcessingSettings
    from .crl import CertificateList

__all__ = [
    'decode_asn1',
    'decode_tbs',
    'decode_certificate_list_parts',
    'decode_certificate_list',
    'encode_tbs',
    'certificate_list_to_asn1',
    'dump',
    'export_certificate_list',
]

logger = logging.getLogger(__name__)


def decode_asn1(data: bytes, spec, what: str):
    """
    Decode BER/DER data against a schema, rejecting trailing data.

    :raises DecodeError:
        if the data is truncated.
    :raises SchemaMismatchError:
        if the data does not match the schema, or is followed by
        trailing bytes.
    """
    if not isinstance(data, (bytes, bytearray)):
        raise DecodeError(f"Expected bytes to decode {what}, got {type(data)}")
    try:
        value, rest = ber_decoder.decode(bytes(data), asn1Spec=spec)
    except SubstrateUnderrunError as e:
        raise DecodeError(f"Truncated {what} data: {e}") from e
    except PyAsn1Error as e:
        raise SchemaMismatchError(
            f"Data does not match the {what} structure: {e}"
        ) from e
    if rest:
        raise SchemaMismatchError(f"{len(rest)} trailing byte(s) after {what}")
    return value


def _decode_extensions(
    asn1_extensions, interpreters: Mapping[str, ExtensionInterpreter]
) -> List[Extension]:
    result = []
    for asn1_ext in asn1_extensions:
        extn_id = str(asn1_ext['extnID'])
        critical = get_optional(asn1_ext, 'critical')
        value = asn1_ext['extnValue'].asOctets()
        result.append(
            Extension(
                extn_id=extn_id,
                value=value,
                critical=bool(critical) if critical is not None else False,
                parsed=interpret_value(extn_id, value, interpreters),
            )
        )
    return result


def _decode_revoked_certificate(
    asn1_entry, interpreters: Mapping[str, ExtensionInterpreter]
) -> RevokedCertificate:
    entry_extensions = get_optional(asn1_entry, 'crlEntryExtensions')
    return RevokedCertificate(
        serial_number=int(asn1_entry['userCertificate']),
        revocation_date=Time.from_asn1(asn1_entry['revocationDate']),
        entry_extensions=(
            _decode_extensions(entry_extensions, interpreters)
            if entry_extensions is not None
            else None
        ),
    )


def decode_tbs(
    tree: schema.TBSCertList,
    interpreters: Optional[Mapping[str, ExtensionInterpreter]] = None,
) -> TbsCertList:
    """
    Populate a :class:`.TbsCertList` from a decoded ``TBSCertList`` value.

    Optional components that are not present in the decoded value are left
    unset in the result.

    :param tree:
        The decoded value.
    :param interpreters:
        Extension interpreters to apply, by extension OID.
    """
    interpreters = interpreters or {}
    version = get_optional(tree, 'version')
    next_update = get_optional(tree, 'nextUpdate')
    revoked = get_optional(tree, 'revokedCertificates')
    crl_extensions = get_optional(tree, 'crlExtensions')

    return TbsCertList(
        issuer=Name.from_asn1(tree['issuer']),
        this_update=Time.from_asn1(tree['thisUpdate']),
        signature=AlgorithmIdentifier.from_asn1(tree['signature']),
        # the encoded INTEGER is zero-based (v2 is encoded as 1)
        version=int(version) + 1 if version is not None else DEFAULT_VERSION,
        next_update=(
            Time.from_asn1(next_update) if next_update is not None else None
        ),
        revoked_certificates=(
            [_decode_revoked_certificate(e, interpreters) for e in revoked]
            if revoked is not None
            else None
        ),
        crl_extensions=(
            _decode_extensions(crl_extensions, interpreters)
            if crl_extensions is not None
            else None
        ),
    )


def decode_certificate_list_parts(
    data: bytes,
    interpreters: Optional[Mapping[str, ExtensionInterpreter]] = None,
):
    """
    Decode an encoded ``CertificateList``.

    :return:
        A tuple containing the decoded body, the exact encoded span of the
        body, the outer signature algorithm and the signature value.
    """
    outer = decode_asn1(data, schema.CertificateList(), 'CertificateList')
    tbs_bytes = outer['tbsCertList'].asOctets()
    tbs_tree = decode_asn1(tbs_bytes, schema.TBSCertList(), 'TBSCertList')
    tbs = decode_tbs(tbs_tree, interpreters)
    signature_algorithm = AlgorithmIdentifier.from_asn1(
        outer['signatureAlgorithm']
    )
    signature_value = outer['signatureValue'].asOctets()
    logger.debug(
        f"Decoded CRL issued by {tbs.issuer.human_friendly}; "
        f"{len(tbs_bytes)} byte(s) of signed data retained"
    )
    return tbs, tbs_bytes, signature_algorithm, signature_value


def decode_certificate_list(
    data: bytes, settings: Optional['CRLProcessingSettings'] = None
) -> 'CertificateList':
    """
    Decode a CRL.

    :param data:
        BER or DER encoded ``CertificateList``.
    :param settings:
        Processing settings. These determine which extensions are
        interpreted.
    :return:
        A :class:`~crlkit.crl.CertificateList`.
    """
    from .crl import CertificateList

    interpreters = settings.interpreters if settings is not None else None
    tbs, tbs_bytes, signature_algorithm, signature_value = (
        decode_certificate_list_parts(data, interpreters)
    )
    return CertificateList(
        tbs=tbs,
        tbs_bytes=tbs_bytes,
        signature_algorithm=signature_algorithm,
        signature_value=signature_value,
    )


def _encode_extensions(extensions: List[Extension], container):
    container.clear()
    for ix, ext in enumerate(extensions):
        asn1_ext = rfc5280.Extension()
        asn1_ext['extnID'] = univ.ObjectIdentifier(ext.extn_id)
        if ext.critical:
            asn1_ext['critical'] = True
        asn1_ext['extnValue'] = univ.OctetString(ext.value)
        container.setComponentByPosition(ix, asn1_ext)
    return container


def _encode_revoked_certificate(entry: RevokedCertificate):
    asn1_entry = schema.RevokedCertificate()
    asn1_entry['userCertificate'] = entry.serial_number
    asn1_entry['revocationDate'] = entry.revocation_date.to_asn1()
    if entry.entry_extensions is not None:
        asn1_entry['crlEntryExtensions'] = _encode_extensions(
            entry.entry_extensions, rfc5280.Extensions()
        )
    return asn1_entry


def encode_tbs(tbs: TbsCertList) -> schema.TBSCertList:
    """
    Build a fresh ``TBSCertList`` value from the fields of a
    :class:`.TbsCertList`.

    The version is only included if it differs from the default. Optional
    components are included if and only if they are set, so an empty list
    of revoked certificates is encoded as an empty sequence.

    :raises EncodeError:
        if the signature algorithm is not set.
    """
    if tbs.signature is None:
        raise EncodeError(
            "The signature algorithm of the CRL body must be set before it "
            "can be encoded."
        )
    result = schema.TBSCertList()
    if tbs.version != DEFAULT_VERSION:
        if tbs.version < DEFAULT_VERSION:
            raise EncodeError(f"Invalid CRL version {tbs.version}")
        result['version'] = tbs.version - 1
    elif tbs.has_extensions:
        logger.warning(
            "CRL contains extensions, but its version is set to v1; "
            ":rfc:`5280` requires v2 in this case."
        )
    result['signature'] = tbs.signature.to_asn1()
    result['issuer'] = tbs.issuer.to_asn1()
    result['thisUpdate'] = tbs.this_update.to_asn1()
    if tbs.next_update is not None:
        result['nextUpdate'] = tbs.next_update.to_asn1()
    if tbs.revoked_certificates is not None:
        entries = schema.RevokedCertificates().clear()
        for ix, entry in enumerate(tbs.revoked_certificates):
            entries.setComponentByPosition(
                ix, _encode_revoked_certificate(entry)
            )
        result['revokedCertificates'] = entries
    if tbs.crl_extensions is not None:
        result['crlExtensions'] = _encode_extensions(
            tbs.crl_extensions, schema.CRLExtensions()
        )
    return result


def certificate_list_to_asn1(
    certificate_list: 'CertificateList', regenerate_tbs: bool = False
) -> schema.CertificateList:
    """
    Assemble the outer ``CertificateList`` value.

    :param certificate_list:
        The CRL to encode.
    :param regenerate_tbs:
        If ``True``, encode the body afresh from the current field values.
        If ``False``, the stored encoded body is used verbatim, if there is
        one; otherwise the body is derived from the fields.
    :raises EncodeError:
        if the outer signature algorithm is not set.
    """
    if regenerate_tbs or not certificate_list.tbs_bytes:
        tbs_data = der_encode(encode_tbs(certificate_list.tbs))
    else:
        tbs_data = certificate_list.tbs_bytes
    if certificate_list.signature_algorithm is None:
        raise EncodeError(
            "The signature algorithm of the CRL must be set before it "
            "can be encoded."
        )
    result = schema.CertificateList()
    result['tbsCertList'] = univ.Any(tbs_data)
    algo = certificate_list.signature_algorithm
    result['signatureAlgorithm'] = algo.to_asn1()
    result['signatureValue'] = univ.BitString.fromOctetString(
        certificate_list.signature_value
    )
    return result


def dump(
    certificate_list: 'CertificateList', regenerate_tbs: bool = False
) -> bytes:
    """
    DER-encode a CRL. See :func:`certificate_list_to_asn1`.
    """
    return der_encode(
        certificate_list_to_asn1(certificate_list, regenerate_tbs)
    )


def _export_extensions(extensions: List[Extension]) -> List[dict]:
    result = []
    for ext in extensions:
        exported = {
            'extn_id': ext.extn_id,
            'name': extension_name(ext.extn_id),
            'critical': ext.critical,
            'value': ext.value.hex(),
        }
        if ext.parsed is not None:
            parsed = ext.parsed
            if isinstance(parsed, datetime):
                parsed = parsed.isoformat()
            exported['parsed'] = parsed
        result.append(exported)
    return result


def _export_revoked_certificate(entry: RevokedCertificate) -> dict:
    result = {
        'serial_number': entry.serial_number,
        'revocation_date': entry.revocation_date.isoformat(),
    }
    if entry.entry_extensions is not None:
        result['entry_extensions'] = _export_extensions(entry.entry_extensions)
    return result


def export_certificate_list(certificate_list: 'CertificateList') -> dict:
    """
    Export a CRL as a JSON-compatible dictionary.

    Fields that are not set on the CRL do not appear in the result at all,
    and the version only appears if it differs from the default.
    """
    tbs = certificate_list.tbs
    result = {
        'issuer': tbs.issuer.as_list(),
        'this_update': tbs.this_update.isoformat(),
    }
    # both are empty on a CRL that was never signed or loaded
    if certificate_list.tbs_bytes:
        result['tbs'] = certificate_list.tbs_bytes.hex()
    if certificate_list.signature_value:
        result['signature_value'] = certificate_list.signature_value.hex()
    if tbs.signature is not None:
        result['signature'] = tbs.signature.as_dict()
    if certificate_list.signature_algorithm is not None:
        result['signature_algorithm'] = (
            certificate_list.signature_algorithm.as_dict()
        )
    if tbs.version != DEFAULT_VERSION:
        result['version'] = tbs.version
    if tbs.next_update is not None:
        result['next_update'] = tbs.next_update.isoformat()
    if tbs.revoked_certificates is not None:
        result['revoked_certificates'] = [
            _export_revoked_certificate(entry)
            for entry in tbs.revoked_certificates
        ]
    if tbs.crl_extensions is not None:
        result['crl_extensions'] = _export_extensions(tbs.crl_extensions)
    return result
