from pyasn1.codec.der import encoder as der_encoder
from pyasn1.error import PyAsn1Error

from .errors import EncodeError

__all__ = ['get_optional', 'der_encode']


def get_optional(asn1_value, name: str):
    """
    Retrieve a component from a decoded constructed value without
    instantiating it when it is absent.

    :param asn1_value:
        A pyasn1 ``Sequence`` (or ``Set``) value.
    :param name:
        The component name.
    :return:
        The component, or ``None`` if the component is not present.
    """
    return asn1_value.getComponentByName(name, default=None, instantiate=False)


def der_encode(asn1_value) -> bytes:
    try:
        return der_encoder.encode(asn1_value)
    except PyAsn1Error as e:
        raise EncodeError(
            f"Failed to encode {type(asn1_value).__name__}: {e}"
        ) from e
