"""
Typed representation of the contents of a certificate revocation list.

Optional fields use ``None`` to mark absence. In particular, an empty list
of revoked certificates is not the same thing as a missing one: the former
is encoded as an empty ``SEQUENCE``, the latter is omitted altogether.
"""

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, List, Optional

from pyasn1.codec.ber import decoder as ber_decoder
from pyasn1.error import PyAsn1Error
from pyasn1.type import univ, useful
from pyasn1_modules import rfc5280

from .asn1_util import der_encode, get_optional
from .errors import DecodeError, EncodeError, SchemaMismatchError
from .extensions import CRL_REASON, INVALIDITY_DATE
from .names import Name

__all__ = [
    'AlgorithmIdentifier',
    'TimeType',
    'Time',
    'Extension',
    'RevokedCertificate',
    'TbsCertList',
    'PublicKeyInfo',
    'DEFAULT_VERSION',
]

DEFAULT_VERSION = 1


@dataclass(frozen=True)
class AlgorithmIdentifier:
    algorithm: str
    """Dotted OID of the algorithm."""

    parameters: Optional[bytes] = None
    """
    DER encoding of the algorithm parameters, or ``None`` if absent.
    Note that an encoded ``NULL`` is a present value.
    """

    @classmethod
    def from_asn1(cls, value: rfc5280.AlgorithmIdentifier):
        params = get_optional(value, 'parameters')
        return cls(
            algorithm=str(value['algorithm']),
            parameters=params.asOctets() if params is not None else None,
        )

    def to_asn1(self) -> rfc5280.AlgorithmIdentifier:
        result = rfc5280.AlgorithmIdentifier()
        result['algorithm'] = univ.ObjectIdentifier(self.algorithm)
        if self.parameters is not None:
            result['parameters'] = univ.Any(self.parameters)
        return result

    def as_dict(self) -> dict:
        result = {'algorithm': self.algorithm}
        if self.parameters is not None:
            result['parameters'] = self.parameters.hex()
        return result


class TimeType(enum.Enum):
    UTC_TIME = 'utc_time'
    GENERALIZED_TIME = 'generalized_time'


@dataclass(frozen=True)
class Time:
    """
    A point in time, together with the ASN.1 type used to encode it.

    Values are normalised to UTC, with whole seconds.
    """

    value: datetime
    kind: TimeType = TimeType.UTC_TIME

    def __post_init__(self):
        if self.value.tzinfo is None:
            raise ValueError("Time values must be timezone-aware")
        normalised = self.value.astimezone(timezone.utc).replace(microsecond=0)
        object.__setattr__(self, 'value', normalised)

    @classmethod
    def for_moment(cls, moment: datetime) -> 'Time':
        """
        Wrap a datetime, choosing UTCTime for the years 1950 through 2049
        and GeneralizedTime otherwise, as required by :rfc:`5280`.
        """
        year = moment.astimezone(timezone.utc).year
        if 1950 <= year < 2050:
            return cls(moment, TimeType.UTC_TIME)
        return cls(moment, TimeType.GENERALIZED_TIME)

    @classmethod
    def from_asn1(cls, value: rfc5280.Time) -> 'Time':
        choice = value.getName()
        component = value.getComponent()
        try:
            moment = component.asDateTime
        except (PyAsn1Error, ValueError) as e:
            raise DecodeError(f"Malformed time value: {e}") from e
        if moment.tzinfo is None:
            raise DecodeError(f"Time value {component} does not specify UTC")
        if choice == 'utcTime':
            # two-digit years from 50 onwards refer to the 20th century
            if moment.year >= 2050:
                moment = moment.replace(year=moment.year - 100)
            return cls(moment, TimeType.UTC_TIME)
        return cls(moment, TimeType.GENERALIZED_TIME)

    def to_asn1(self) -> rfc5280.Time:
        result = rfc5280.Time()
        if self.kind is TimeType.UTC_TIME:
            if not 1950 <= self.value.year < 2050:
                raise EncodeError(
                    f"Year {self.value.year} cannot be encoded as UTCTime"
                )
            result['utcTime'] = useful.UTCTime.fromDateTime(self.value)
        else:
            result['generalTime'] = useful.GeneralizedTime.fromDateTime(
                self.value
            )
        return result

    def isoformat(self) -> str:
        return self.value.isoformat()


@dataclass(frozen=True)
class Extension:
    extn_id: str
    """Dotted OID of the extension type."""

    value: bytes
    """Contents of the ``extnValue`` octet string."""

    critical: bool = False

    parsed: Any = field(default=None, compare=False)
    """
    Interpreted value, if an interpreter for this extension type was
    enabled when the extension was decoded.
    """

    @property
    def understood(self) -> bool:
        return self.parsed is not None


def _find_extension(extensions: Optional[List[Extension]], extn_id: str):
    if extensions is None:
        return None
    return next((ext for ext in extensions if ext.extn_id == extn_id), None)


@dataclass
class RevokedCertificate:
    serial_number: int
    revocation_date: Time
    entry_extensions: Optional[List[Extension]] = None

    @property
    def reason(self) -> Optional[str]:
        """
        The revocation reason, if a ``crl_reason`` entry extension is present
        and was interpreted.
        """
        ext = _find_extension(self.entry_extensions, CRL_REASON)
        return ext.parsed if ext is not None else None

    @property
    def invalidity_date(self) -> Optional[datetime]:
        ext = _find_extension(self.entry_extensions, INVALIDITY_DATE)
        return ext.parsed if ext is not None else None


@dataclass
class TbsCertList:
    """
    The signed body of a certificate revocation list.
    """

    issuer: Name
    this_update: Time
    signature: Optional[AlgorithmIdentifier] = None
    """
    Signature algorithm as declared inside the signed body. Filled in
    when the CRL is signed.
    """

    version: int = DEFAULT_VERSION
    """
    CRL version: ``1`` for v1, ``2`` for v2. Must be ``2`` whenever entry
    extensions or CRL extensions are present.
    """

    next_update: Optional[Time] = None
    revoked_certificates: Optional[List[RevokedCertificate]] = None
    crl_extensions: Optional[List[Extension]] = None

    def get_extension(self, extn_id: str) -> Optional[Extension]:
        return _find_extension(self.crl_extensions, extn_id)

    @property
    def critical_extensions(self) -> List[Extension]:
        return [ext for ext in (self.crl_extensions or ()) if ext.critical]

    @property
    def has_extensions(self) -> bool:
        if self.crl_extensions is not None:
            return True
        return any(
            entry.entry_extensions is not None
            for entry in (self.revoked_certificates or ())
        )


@dataclass(frozen=True)
class PublicKeyInfo:
    """
    A subject public key info structure (algorithm plus key bits).
    """

    algorithm: AlgorithmIdentifier
    public_key: bytes

    @classmethod
    def from_asn1(cls, value: rfc5280.SubjectPublicKeyInfo):
        return cls(
            algorithm=AlgorithmIdentifier.from_asn1(value['algorithm']),
            public_key=value['subjectPublicKey'].asOctets(),
        )

    @classmethod
    def load(cls, data: bytes) -> 'PublicKeyInfo':
        try:
            spki, rest = ber_decoder.decode(
                data, asn1Spec=rfc5280.SubjectPublicKeyInfo()
            )
        except PyAsn1Error as e:
            raise SchemaMismatchError(
                f"Could not decode subject public key info: {e}"
            ) from e
        if rest:
            raise DecodeError("Trailing data after subject public key info")
        return cls.from_asn1(spki)

    def to_asn1(self) -> rfc5280.SubjectPublicKeyInfo:
        result = rfc5280.SubjectPublicKeyInfo()
        result['algorithm'] = self.algorithm.to_asn1()
        result['subjectPublicKey'] = univ.BitString.fromOctetString(
            self.public_key
        )
        return result

    def dump(self) -> bytes:
        return der_encode(self.to_asn1())
