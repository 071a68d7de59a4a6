"""
Distinguished names, as far as CRL processing needs them.

Names are kept in their encoded form (attribute type OID plus the DER
encoding of the attribute value), and compared structurally. No string
preparation or case folding takes place.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Tuple, Union

from pyasn1.codec.ber import decoder as ber_decoder
from pyasn1.codec.der import encoder as der_encoder
from pyasn1.error import PyAsn1Error
from pyasn1.type import char, univ
from pyasn1_modules import rfc5280

__all__ = ['NameAttribute', 'Name', 'NAME_ATTRIBUTE_OIDS']

logger = logging.getLogger(__name__)


NAME_ATTRIBUTE_OIDS: Dict[str, str] = {
    'common_name': '2.5.4.3',
    'surname': '2.5.4.4',
    'serial_number': '2.5.4.5',
    'country_name': '2.5.4.6',
    'locality_name': '2.5.4.7',
    'state_or_province_name': '2.5.4.8',
    'street_address': '2.5.4.9',
    'organization_name': '2.5.4.10',
    'organizational_unit_name': '2.5.4.11',
    'title': '2.5.4.12',
    'given_name': '2.5.4.42',
    'organization_identifier': '2.5.4.97',
    'domain_component': '0.9.2342.19200300.100.1.25',
    'email_address': '1.2.840.113549.1.9.1',
}

_ATTRIBUTE_NAMES = {oid: name for name, oid in NAME_ATTRIBUTE_OIDS.items()}

# these attribute types have a restricted string syntax
_PRINTABLE_ATTRIBUTES = frozenset(['2.5.4.6', '2.5.4.5'])
_IA5_ATTRIBUTES = frozenset(
    ['1.2.840.113549.1.9.1', '0.9.2342.19200300.100.1.25']
)


def _encode_attribute_value(oid: str, value: str) -> bytes:
    if oid in _PRINTABLE_ATTRIBUTES:
        str_value = char.PrintableString(value)
    elif oid in _IA5_ATTRIBUTES:
        str_value = char.IA5String(value)
    else:
        str_value = char.UTF8String(value)
    return der_encoder.encode(str_value)


@dataclass(frozen=True)
class NameAttribute:
    """
    A single attribute type/value pair in a relative distinguished name.
    """

    oid: str
    """Dotted attribute type OID."""

    value: bytes
    """DER encoding of the attribute value."""

    @property
    def type_name(self) -> str:
        return _ATTRIBUTE_NAMES.get(self.oid, self.oid)

    @property
    def human_friendly_value(self) -> str:
        try:
            decoded, _ = ber_decoder.decode(self.value)
        except PyAsn1Error:
            return self.value.hex()
        string_types = (char.AbstractCharacterString, univ.OctetString)
        if isinstance(decoded, string_types):
            try:
                return str(decoded)
            except (PyAsn1Error, UnicodeError):
                pass
        return self.value.hex()


RelativeDistinguishedName = Tuple[NameAttribute, ...]


@dataclass(frozen=True)
class Name:
    """
    An X.501 name, as a sequence of relative distinguished names.
    """

    rdns: Tuple[RelativeDistinguishedName, ...] = ()

    @classmethod
    def build(
        cls, attributes: Union[Dict[str, str], Iterable[Tuple[str, str]]]
    ):
        """
        Build a name from attribute name/value pairs, one RDN per attribute,
        in the order given.

        :param attributes:
            A dictionary or an iterable of pairs. Keys are either friendly
            names (see :const:`NAME_ATTRIBUTE_OIDS`) or dotted OIDs.
        :return:
            A :class:`Name` object.
        """
        if isinstance(attributes, dict):
            attributes = attributes.items()
        rdns = []
        for key, value in attributes:
            oid = NAME_ATTRIBUTE_OIDS.get(key, key)
            rdns.append(
                (NameAttribute(oid, _encode_attribute_value(oid, value)),)
            )
        return cls(tuple(rdns))

    @classmethod
    def from_asn1(cls, asn1_name: rfc5280.Name) -> 'Name':
        rdn_sequence = asn1_name['rdnSequence']
        rdns = []
        for rdn in rdn_sequence:
            rdns.append(
                tuple(
                    NameAttribute(
                        oid=str(atv['type']), value=atv['value'].asOctets()
                    )
                    for atv in rdn
                )
            )
        return cls(tuple(rdns))

    def to_asn1(self) -> rfc5280.Name:
        rdn_sequence = rfc5280.RDNSequence().clear()
        for rdn_ix, rdn in enumerate(self.rdns):
            asn1_rdn = rfc5280.RelativeDistinguishedName()
            for atv_ix, attr in enumerate(rdn):
                atv = rfc5280.AttributeTypeAndValue()
                atv['type'] = rfc5280.AttributeType(attr.oid)
                atv['value'] = rfc5280.AttributeValue(attr.value)
                asn1_rdn.setComponentByPosition(atv_ix, atv)
            rdn_sequence.setComponentByPosition(rdn_ix, asn1_rdn)
        asn1_name = rfc5280.Name()
        asn1_name['rdnSequence'] = rdn_sequence
        return asn1_name

    @property
    def human_friendly(self) -> str:
        return ', '.join(
            ' + '.join(
                f'{attr.type_name}: {attr.human_friendly_value}'
                for attr in rdn
            )
            for rdn in self.rdns
        )

    def as_list(self) -> List[List[Dict[str, str]]]:
        """
        Render the name as JSON-compatible nested lists.
        """
        return [
            [
                {'type': attr.type_name, 'value': attr.human_friendly_value}
                for attr in rdn
            ]
            for rdn in self.rdns
        ]

    def __str__(self):
        return self.human_friendly
