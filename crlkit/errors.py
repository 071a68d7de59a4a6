__all__ = [
    'CRLError',
    'DecodeError',
    'SchemaMismatchError',
    'EncodeError',
    'MissingKeyMaterialError',
    'UnsupportedAlgorithmError',
    'UnsupportedCurveError',
    'MalformedParametersError',
    'MalformedKeyParametersError',
    'UntrustedCriticalExtensionError',
    'CryptoEngineError',
]


class CRLError(ValueError):
    """
    Base class for errors raised while processing a certificate revocation
    list. The failure message is available as an attribute, so callers
    do not have to dig through the exception's arguments.
    """

    def __init__(self, failure_message, *args):
        self.failure_message = str(failure_message)
        super().__init__(failure_message, *args)


class DecodeError(CRLError):
    """Malformed input bytes."""
    pass


class SchemaMismatchError(DecodeError):
    """
    The input is well-formed BER, but does not match the expected structure
    (wrong tag, wrong nesting, or a required field is missing).
    """
    pass


class EncodeError(CRLError):
    pass


class MissingKeyMaterialError(CRLError):
    pass


class UnsupportedAlgorithmError(CRLError):
    pass


class UnsupportedCurveError(UnsupportedAlgorithmError):
    pass


class MalformedParametersError(CRLError):
    pass


class MalformedKeyParametersError(MalformedParametersError):
    pass


class UntrustedCriticalExtensionError(CRLError):
    """
    A critical extension is present that was not understood.

    This error does not escape from signature verification: the verifier
    reports it as a negative result.
    """

    def __init__(self, failure_message, extn_id: str):
        self.extn_id = extn_id
        super().__init__(failure_message, extn_id)


class CryptoEngineError(CRLError):
    """Opaque failure reported by the cryptographic engine."""
    pass
