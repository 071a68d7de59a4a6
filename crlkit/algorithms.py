"""
Lookup tables and helpers that translate algorithm identifiers into the
parameters needed to sign or verify a CRL.

Only the signature mechanisms listed in :class:`SignatureScheme` are
supported. Everything else is rejected with
:class:`~crlkit.errors.UnsupportedAlgorithmError`.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Dict, Optional

from pyasn1.codec.ber import decoder as ber_decoder
from pyasn1.error import PyAsn1Error
from pyasn1.type import tag, univ
from pyasn1_modules import rfc4055, rfc5280

from . import schema
from .asn1_util import der_encode, get_optional
from .errors import (
    MalformedKeyParametersError,
    MalformedParametersError,
    UnsupportedAlgorithmError,
    UnsupportedCurveError,
)
from .model import AlgorithmIdentifier, PublicKeyInfo

__all__ = [
    'SignatureScheme',
    'AlgorithmDescriptor',
    'PSSParameters',
    'NamedCurve',
    'KeyImportParameters',
    'resolve_by_oid',
    'resolve_hash_algorithm',
    'parse_pss_parameters',
    'encode_pss_parameters',
    'ecdsa_der_to_raw',
    'ecdsa_raw_to_der',
    'named_curve_for_key',
    'key_import_parameters',
    'signature_algorithm_for',
]

logger = logging.getLogger(__name__)


class SignatureScheme(enum.Enum):
    RSASSA_PKCS1V15 = 'rsassa_pkcs1v15'
    RSASSA_PSS = 'rsassa_pss'
    ECDSA = 'ecdsa'


@dataclass(frozen=True)
class AlgorithmDescriptor:
    name: str
    scheme: SignatureScheme
    hash_algorithm: Optional[str]
    """
    Digest algorithm implied by the OID. ``None`` for RSASSA-PSS, where the
    digest is specified in the algorithm parameters.
    """


RSASSA_PSS = '1.2.840.113549.1.1.10'
MGF1 = '1.2.840.113549.1.1.8'
RSA_ENCRYPTION = '1.2.840.113549.1.1.1'
EC_PUBLIC_KEY = '1.2.840.10045.2.1'

SIGNATURE_ALGORITHMS: Dict[str, AlgorithmDescriptor] = {
    '1.2.840.113549.1.1.5': AlgorithmDescriptor(
        'sha1_rsa', SignatureScheme.RSASSA_PKCS1V15, 'sha1'
    ),
    '1.2.840.113549.1.1.14': AlgorithmDescriptor(
        'sha224_rsa', SignatureScheme.RSASSA_PKCS1V15, 'sha224'
    ),
    '1.2.840.113549.1.1.11': AlgorithmDescriptor(
        'sha256_rsa', SignatureScheme.RSASSA_PKCS1V15, 'sha256'
    ),
    '1.2.840.113549.1.1.12': AlgorithmDescriptor(
        'sha384_rsa', SignatureScheme.RSASSA_PKCS1V15, 'sha384'
    ),
    '1.2.840.113549.1.1.13': AlgorithmDescriptor(
        'sha512_rsa', SignatureScheme.RSASSA_PKCS1V15, 'sha512'
    ),
    RSASSA_PSS: AlgorithmDescriptor(
        'rsassa_pss', SignatureScheme.RSASSA_PSS, None
    ),
    '1.2.840.10045.4.1': AlgorithmDescriptor(
        'sha1_ecdsa', SignatureScheme.ECDSA, 'sha1'
    ),
    '1.2.840.10045.4.3.1': AlgorithmDescriptor(
        'sha224_ecdsa', SignatureScheme.ECDSA, 'sha224'
    ),
    '1.2.840.10045.4.3.2': AlgorithmDescriptor(
        'sha256_ecdsa', SignatureScheme.ECDSA, 'sha256'
    ),
    '1.2.840.10045.4.3.3': AlgorithmDescriptor(
        'sha384_ecdsa', SignatureScheme.ECDSA, 'sha384'
    ),
    '1.2.840.10045.4.3.4': AlgorithmDescriptor(
        'sha512_ecdsa', SignatureScheme.ECDSA, 'sha512'
    ),
}

HASH_ALGORITHMS: Dict[str, str] = {
    '1.3.14.3.2.26': 'sha1',
    '2.16.840.1.101.3.4.2.4': 'sha224',
    '2.16.840.1.101.3.4.2.1': 'sha256',
    '2.16.840.1.101.3.4.2.2': 'sha384',
    '2.16.840.1.101.3.4.2.3': 'sha512',
}

_HASH_OIDS = {name: oid for oid, name in HASH_ALGORITHMS.items()}

DIGEST_SIZES: Dict[str, int] = {
    'sha1': 20,
    'sha224': 28,
    'sha256': 32,
    'sha384': 48,
    'sha512': 64,
}

# DER encoding of NULL
_NULL = b'\x05\x00'


@dataclass(frozen=True)
class NamedCurve:
    name: str
    oid: str
    coordinate_size: int
    """Size of a field element in bytes."""


NAMED_CURVES: Dict[str, NamedCurve] = {
    curve.oid: curve
    for curve in (
        NamedCurve('secp256r1', '1.2.840.10045.3.1.7', 32),
        NamedCurve('secp384r1', '1.3.132.0.34', 48),
        NamedCurve('secp521r1', '1.3.132.0.35', 66),
    )
}


@dataclass(frozen=True)
class PSSParameters:
    """
    RSASSA-PSS parameters, with the defaults from :rfc:`4055`.
    """

    hash_algorithm: str = 'sha1'
    mgf_hash_algorithm: str = 'sha1'
    salt_length: int = 20


@dataclass(frozen=True)
class KeyImportParameters:
    scheme: SignatureScheme
    named_curve: Optional[NamedCurve] = None


def resolve_by_oid(oid: str) -> AlgorithmDescriptor:
    """
    Look up a signature algorithm.

    :raises UnsupportedAlgorithmError:
        if the OID does not refer to a supported signature algorithm.
    """
    try:
        return SIGNATURE_ALGORITHMS[oid]
    except KeyError:
        raise UnsupportedAlgorithmError(
            f"Signature algorithm {oid} is not supported."
        )


def _hash_name(oid: str) -> str:
    try:
        return HASH_ALGORITHMS[oid]
    except KeyError:
        raise UnsupportedAlgorithmError(
            f"Digest algorithm {oid} is not supported."
        )


def _decode_parameters(data: bytes, spec, what: str):
    try:
        value, rest = ber_decoder.decode(data, asn1Spec=spec)
    except PyAsn1Error as e:
        raise MalformedParametersError(f"Could not parse {what}: {e}") from e
    if rest:
        raise MalformedParametersError(f"Trailing data after {what}")
    return value


def parse_pss_parameters(params: Optional[bytes]) -> PSSParameters:
    """
    Parse RSASSA-PSS parameters.

    Absent parameters, and absent components within the parameters, take
    on their default values (SHA-1, MGF1 with SHA-1, salt length 20).

    :param params:
        DER-encoded ``RSASSA-PSS-params``, or ``None``.
    :raises MalformedParametersError:
        if the parameters cannot be parsed.
    :raises UnsupportedAlgorithmError:
        if the parameters specify an unsupported digest or mask generation
        function.
    """
    if params is None:
        return PSSParameters()
    decoded = _decode_parameters(
        params, rfc4055.RSASSA_PSS_params(), 'RSASSA-PSS parameters'
    )
    md_name = 'sha1'
    hash_alg = get_optional(decoded, 'hashAlgorithm')
    if hash_alg is not None:
        md_name = _hash_name(str(hash_alg['algorithm']))

    mgf_md_name = 'sha1'
    mga = get_optional(decoded, 'maskGenAlgorithm')
    if mga is not None:
        if str(mga['algorithm']) != MGF1:
            raise UnsupportedAlgorithmError(
                f"Only MGF1 is supported, not {mga['algorithm']}"
            )
        mgf_params = get_optional(mga, 'parameters')
        if mgf_params is not None:
            mgf_hash = _decode_parameters(
                mgf_params.asOctets(),
                rfc5280.AlgorithmIdentifier(),
                'MGF1 parameters',
            )
            mgf_md_name = _hash_name(str(mgf_hash['algorithm']))

    if mgf_md_name != md_name:
        logger.warning(
            f"Message digest for MGF1 is {mgf_md_name}, and the one used for "
            f"signing is {md_name}. If these do not agree, some software may "
            f"refuse to validate the signature."
        )
    salt_length = int(decoded['saltLength'])
    if salt_length < 0:
        raise MalformedParametersError(
            f"Negative PSS salt length {salt_length}"
        )
    return PSSParameters(
        hash_algorithm=md_name,
        mgf_hash_algorithm=mgf_md_name,
        salt_length=salt_length,
    )


def _hash_algorithm_identifier(md_name: str) -> rfc5280.AlgorithmIdentifier:
    try:
        oid = _HASH_OIDS[md_name]
    except KeyError:
        raise UnsupportedAlgorithmError(
            f"Digest algorithm {md_name} is not supported."
        )
    result = rfc5280.AlgorithmIdentifier()
    result['algorithm'] = univ.ObjectIdentifier(oid)
    result['parameters'] = univ.Any(_NULL)
    return result


def _explicit(value, tag_number: int):
    return value.subtype(
        explicitTag=tag.Tag(
            tag.tagClassContext, tag.tagFormatConstructed, tag_number
        ),
        cloneValueFlag=True,
    )


def encode_pss_parameters(pss: PSSParameters) -> bytes:
    """
    DER-encode RSASSA-PSS parameters. Components equal to their default
    value are omitted.
    """
    result = rfc4055.RSASSA_PSS_params()
    if pss.hash_algorithm != 'sha1':
        result['hashAlgorithm'] = _explicit(
            _hash_algorithm_identifier(pss.hash_algorithm), 0
        )
    if pss.mgf_hash_algorithm != 'sha1':
        mga = rfc5280.AlgorithmIdentifier()
        mga['algorithm'] = univ.ObjectIdentifier(MGF1)
        mga['parameters'] = univ.Any(
            der_encode(_hash_algorithm_identifier(pss.mgf_hash_algorithm))
        )
        result['maskGenAlgorithm'] = _explicit(mga, 1)
    result['saltLength'] = pss.salt_length
    return der_encode(result)


def resolve_hash_algorithm(algorithm: AlgorithmIdentifier) -> str:
    """
    Determine the digest algorithm used by a signature algorithm.

    :param algorithm:
        A signature algorithm identifier.
    :return:
        The name of the digest algorithm, e.g. ``'sha256'``.
    """
    descriptor = resolve_by_oid(algorithm.algorithm)
    if descriptor.scheme is SignatureScheme.RSASSA_PSS:
        return parse_pss_parameters(algorithm.parameters).hash_algorithm
    return descriptor.hash_algorithm


def ecdsa_der_to_raw(signature: bytes, coordinate_size: int) -> bytes:
    """
    Convert a DER-encoded ``ECDSA-Sig-Value`` into the fixed-width
    concatenation of ``r`` and ``s``.

    :param signature:
        The DER-encoded signature.
    :param coordinate_size:
        Width of each of ``r`` and ``s`` in bytes.
    :raises MalformedParametersError:
        if the signature cannot be parsed, or its components do not fit.
    """
    decoded = _decode_parameters(
        signature, schema.ECDSASigValue(), 'ECDSA signature value'
    )
    result = b''
    for component in ('r', 's'):
        value = int(decoded[component])
        try:
            result += value.to_bytes(coordinate_size, 'big')
        except OverflowError as e:
            raise MalformedParametersError(
                f"ECDSA signature component {component} does not fit "
                f"in {coordinate_size} bytes"
            ) from e
    return result


def ecdsa_raw_to_der(signature: bytes) -> bytes:
    """
    Convert a concatenation of ``r`` and ``s`` into a DER-encoded
    ``ECDSA-Sig-Value``.
    """
    if not signature or len(signature) % 2:
        raise MalformedParametersError(
            f"Raw ECDSA signature must have nonzero even length, "
            f"not {len(signature)}"
        )
    half = len(signature) // 2
    result = schema.ECDSASigValue()
    result['r'] = int.from_bytes(signature[:half], 'big')
    result['s'] = int.from_bytes(signature[half:], 'big')
    return der_encode(result)


def named_curve_for_key(public_key_info: PublicKeyInfo) -> NamedCurve:
    """
    Determine the named curve of an EC public key.

    :raises MalformedKeyParametersError:
        if the key parameters are not a named curve OID.
    :raises UnsupportedCurveError:
        if the curve is not supported.
    """
    params = public_key_info.algorithm.parameters
    if params is None:
        raise MalformedKeyParametersError(
            "EC public key does not specify a curve"
        )
    try:
        curve_oid, rest = ber_decoder.decode(
            params, asn1Spec=univ.ObjectIdentifier()
        )
    except PyAsn1Error as e:
        raise MalformedKeyParametersError(
            f"EC public key parameters must be a named curve: {e}"
        ) from e
    if rest:
        raise MalformedKeyParametersError(
            "Trailing data after EC public key parameters"
        )
    try:
        return NAMED_CURVES[str(curve_oid)]
    except KeyError:
        raise UnsupportedCurveError(f"Curve {curve_oid} is not supported.")


_KEY_ALGORITHMS_FOR_SCHEME = {
    SignatureScheme.RSASSA_PKCS1V15: frozenset([RSA_ENCRYPTION]),
    SignatureScheme.RSASSA_PSS: frozenset([RSA_ENCRYPTION, RSASSA_PSS]),
    SignatureScheme.ECDSA: frozenset([EC_PUBLIC_KEY]),
}


def key_import_parameters(
    descriptor: AlgorithmDescriptor, public_key_info: PublicKeyInfo
) -> KeyImportParameters:
    """
    Work out how a public key should be imported in order to verify
    signatures with the given algorithm.

    :raises UnsupportedAlgorithmError:
        if the key type cannot be used with the signature algorithm.
    """
    key_algorithm = public_key_info.algorithm.algorithm
    if key_algorithm not in _KEY_ALGORITHMS_FOR_SCHEME[descriptor.scheme]:
        raise UnsupportedAlgorithmError(
            f"Public key of type {key_algorithm} cannot be used with "
            f"signature algorithm {descriptor.name}."
        )
    if descriptor.scheme is SignatureScheme.ECDSA:
        return KeyImportParameters(
            scheme=descriptor.scheme,
            named_curve=named_curve_for_key(public_key_info),
        )
    return KeyImportParameters(scheme=descriptor.scheme)


def signature_algorithm_for(
    scheme: SignatureScheme,
    hash_algorithm: str,
    pss: Optional[PSSParameters] = None,
) -> AlgorithmIdentifier:
    """
    Produce the signature algorithm identifier for a scheme and digest.

    :param scheme:
        The signature scheme.
    :param hash_algorithm:
        The digest algorithm name.
    :param pss:
        PSS parameters. Only relevant for :attr:`SignatureScheme.RSASSA_PSS`;
        if not specified, MGF1 with the same digest is used together with a
        salt as long as the digest.
    """
    hash_algorithm = hash_algorithm.lower()
    if scheme is SignatureScheme.RSASSA_PSS:
        if pss is None:
            if hash_algorithm not in DIGEST_SIZES:
                raise UnsupportedAlgorithmError(
                    f"Digest algorithm {hash_algorithm} is not supported."
                )
            pss = PSSParameters(
                hash_algorithm=hash_algorithm,
                mgf_hash_algorithm=hash_algorithm,
                salt_length=DIGEST_SIZES[hash_algorithm],
            )
        return AlgorithmIdentifier(
            algorithm=RSASSA_PSS, parameters=encode_pss_parameters(pss)
        )
    for oid, descriptor in SIGNATURE_ALGORITHMS.items():
        if (
            descriptor.scheme is scheme
            and descriptor.hash_algorithm == hash_algorithm
        ):
            parameters = (
                _NULL if scheme is SignatureScheme.RSASSA_PKCS1V15 else None
            )
            return AlgorithmIdentifier(algorithm=oid, parameters=parameters)
    raise UnsupportedAlgorithmError(
        f"No {scheme.value} signature algorithm with digest "
        f"{hash_algorithm} is supported."
    )
