"""
Interpreters for CRL and CRL entry extensions.

The core only looks at two properties of an extension: whether it is
critical, and whether it was understood. An extension counts as understood
when an interpreter was enabled for its type and managed to parse the value.
By default, no interpreters are enabled. Callers opt in to catalogue
interpreters, or supply their own for other extension types, through
:class:`~crlkit.config.CRLProcessingSettings`.
"""

import logging
from typing import Any, Callable, Dict, Iterable, Mapping

from pyasn1.codec.der import decoder as der_decoder
from pyasn1.error import PyAsn1Error
from pyasn1_modules import rfc5280

from .asn1_util import get_optional

__all__ = [
    'ExtensionInterpreter',
    'CRL_NUMBER',
    'CRL_REASON',
    'INVALIDITY_DATE',
    'DELTA_CRL_INDICATOR',
    'ISSUING_DISTRIBUTION_POINT',
    'AUTHORITY_KEY_IDENTIFIER',
    'KNOWN_EXTENSIONS',
    'extension_name',
    'resolve_extension_type',
    'get_interpreters',
    'interpret_value',
]

logger = logging.getLogger(__name__)

ExtensionInterpreter = Callable[[bytes], Any]

CRL_NUMBER = '2.5.29.20'
CRL_REASON = '2.5.29.21'
INVALIDITY_DATE = '2.5.29.24'
DELTA_CRL_INDICATOR = '2.5.29.27'
ISSUING_DISTRIBUTION_POINT = '2.5.29.28'
AUTHORITY_KEY_IDENTIFIER = '2.5.29.35'


CRL_REASONS = {
    0: 'unspecified',
    1: 'key_compromise',
    2: 'ca_compromise',
    3: 'affiliation_changed',
    4: 'superseded',
    5: 'cessation_of_operation',
    6: 'certificate_hold',
    8: 'remove_from_crl',
    9: 'privilege_withdrawn',
    10: 'aa_compromise',
}


def _decode_strict(value: bytes, spec):
    decoded, rest = der_decoder.decode(value, asn1Spec=spec)
    if rest:
        raise PyAsn1Error(f"{len(rest)} trailing byte(s) in extension value")
    return decoded


def _interpret_crl_number(value: bytes) -> int:
    return int(_decode_strict(value, rfc5280.CRLNumber()))


def _interpret_delta_crl_indicator(value: bytes) -> int:
    return int(_decode_strict(value, rfc5280.BaseCRLNumber()))


def _interpret_crl_reason(value: bytes) -> str:
    code = int(_decode_strict(value, rfc5280.CRLReason()))
    try:
        return CRL_REASONS[code]
    except KeyError:
        raise PyAsn1Error(f"Unknown CRL reason code {code}")


def _interpret_invalidity_date(value: bytes):
    return _decode_strict(value, rfc5280.InvalidityDate()).asDateTime


def _interpret_authority_key_identifier(value: bytes) -> dict:
    aki = _decode_strict(value, rfc5280.AuthorityKeyIdentifier())
    result = {}
    key_id = get_optional(aki, 'keyIdentifier')
    if key_id is not None:
        result['key_identifier'] = key_id.asOctets().hex()
    serial = get_optional(aki, 'authorityCertSerialNumber')
    if serial is not None:
        result['authority_cert_serial_number'] = int(serial)
    return result


def _interpret_issuing_distribution_point(value: bytes) -> dict:
    idp = _decode_strict(value, rfc5280.IssuingDistributionPoint())

    def _flag(name):
        flag = get_optional(idp, name)
        return bool(flag) if flag is not None else False

    return {
        'has_distribution_point': (
            get_optional(idp, 'distributionPoint') is not None
        ),
        'only_contains_user_certs': _flag('onlyContainsUserCerts'),
        'only_contains_ca_certs': _flag('onlyContainsCACerts'),
        'has_only_some_reasons': (
            get_optional(idp, 'onlySomeReasons') is not None
        ),
        'indirect_crl': _flag('indirectCRL'),
        'only_contains_attribute_certs': _flag('onlyContainsAttributeCerts'),
    }


KNOWN_EXTENSIONS: Dict[str, tuple] = {
    'crl_number': (CRL_NUMBER, _interpret_crl_number),
    'delta_crl_indicator': (
        DELTA_CRL_INDICATOR,
        _interpret_delta_crl_indicator,
    ),
    'issuing_distribution_point': (
        ISSUING_DISTRIBUTION_POINT,
        _interpret_issuing_distribution_point,
    ),
    'authority_key_identifier': (
        AUTHORITY_KEY_IDENTIFIER,
        _interpret_authority_key_identifier,
    ),
    'crl_reason': (CRL_REASON, _interpret_crl_reason),
    'invalidity_date': (INVALIDITY_DATE, _interpret_invalidity_date),
}

_NAMES_BY_OID = {oid: name for name, (oid, _) in KNOWN_EXTENSIONS.items()}


def extension_name(extn_id: str) -> str:
    return _NAMES_BY_OID.get(extn_id, extn_id)


def resolve_extension_type(name_or_oid: str) -> str:
    """
    Translate a friendly extension name into its OID. Dotted OIDs are
    returned unchanged.

    :raises KeyError:
        if the name is not a dotted OID and does not appear in the catalogue.
    """
    try:
        oid, _ = KNOWN_EXTENSIONS[name_or_oid]
        return oid
    except KeyError:
        if name_or_oid in _NAMES_BY_OID:
            return name_or_oid
        raise


def get_interpreters(
    extension_types: Iterable[str],
) -> Dict[str, ExtensionInterpreter]:
    """
    Select interpreters from the catalogue.

    :param extension_types:
        Dotted OIDs of the extensions that should be understood.
    :return:
        A mapping of OIDs to interpreter functions.
    """
    result = {}
    for oid in extension_types:
        try:
            _, interpreter = KNOWN_EXTENSIONS[_NAMES_BY_OID[oid]]
        except KeyError:
            raise KeyError(f"No interpreter available for extension {oid}")
        result[oid] = interpreter
    return result


def interpret_value(
    extn_id: str,
    value: bytes,
    interpreters: Mapping[str, ExtensionInterpreter],
):
    """
    Run the interpreter registered for an extension type, if any.

    :return:
        The interpreted value, or ``None`` if the extension was not understood.
    """
    try:
        interpreter = interpreters[extn_id]
    except KeyError:
        return None
    try:
        return interpreter(value)
    except (PyAsn1Error, ValueError) as e:
        logger.warning(
            f"Failed to interpret value of extension "
            f"{extension_name(extn_id)}; treating it as not understood. "
            f"Error: {e}"
        )
        return None
