"""
Abstraction over the cryptographic primitives used to sign and verify CRLs.

The signing and verification pipelines in :mod:`crlkit.signing` only talk to
a :class:`CryptoEngine`. The default implementation,
:class:`CryptographyEngine`, is backed by pyca/cryptography.

ECDSA signatures cross the engine boundary as the fixed-width concatenation
of ``r`` and ``s``; the conversion to and from the DER form used in CRLs is
the caller's responsibility.
"""

import abc
import logging
from dataclasses import dataclass
from typing import Optional

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, padding, rsa

from .algorithms import (
    NAMED_CURVES,
    RSA_ENCRYPTION,
    RSASSA_PSS,
    KeyImportParameters,
    NamedCurve,
    PSSParameters,
    SignatureScheme,
    ecdsa_der_to_raw,
    ecdsa_raw_to_der,
    signature_algorithm_for,
)
from .errors import (
    CryptoEngineError,
    UnsupportedAlgorithmError,
    UnsupportedCurveError,
)
from .model import AlgorithmIdentifier, PublicKeyInfo

__all__ = [
    'SignatureParameters',
    'SigningSetup',
    'CryptoEngine',
    'CryptographyEngine',
    'get_pyca_cryptography_hash',
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SignatureParameters:
    """
    Everything an engine needs to know to produce or check a signature.
    """

    scheme: SignatureScheme
    hash_algorithm: str
    pss: Optional[PSSParameters] = None
    """
    PSS parameters, only for :attr:`SignatureScheme.RSASSA_PSS`.
    """

    named_curve: Optional[NamedCurve] = None
    """
    Curve of the key, only for :attr:`SignatureScheme.ECDSA`.
    """


@dataclass(frozen=True)
class SigningSetup:
    signature_algorithm: AlgorithmIdentifier
    """
    The algorithm identifier to record in the CRL.
    """

    parameters: SignatureParameters


def get_pyca_cryptography_hash(algorithm: str) -> hashes.HashAlgorithm:
    try:
        return getattr(hashes, algorithm.upper())()
    except AttributeError:
        raise UnsupportedAlgorithmError(
            f"Digest algorithm {algorithm} is not supported."
        )


class CryptoEngine(abc.ABC):
    """
    Interface to an implementation of the signature primitives.
    """

    @abc.abstractmethod
    async def default_signature_parameters(
        self, private_key, hash_algorithm: str, prefer_pss: bool = False
    ) -> SigningSetup:
        """
        Choose a signature algorithm for a private key.

        :param private_key:
            The private key that will be used to sign.
        :param hash_algorithm:
            The digest algorithm to use.
        :param prefer_pss:
            Use RSASSA-PSS instead of PKCS#1 v1.5 for RSA keys.
        :return:
            A :class:`SigningSetup`.
        """
        raise NotImplementedError

    @abc.abstractmethod
    async def import_public_key(
        self,
        public_key_info: PublicKeyInfo,
        import_params: KeyImportParameters,
    ):
        """
        Turn a subject public key info structure into a key object the
        engine can verify signatures with.
        """
        raise NotImplementedError

    @abc.abstractmethod
    async def sign(
        self, data: bytes, private_key, parameters: SignatureParameters
    ) -> bytes:
        """
        Sign data.

        :return:
            The raw signature. For ECDSA, this is ``r || s``.
        """
        raise NotImplementedError

    @abc.abstractmethod
    async def verify(
        self,
        parameters: SignatureParameters,
        public_key,
        signature: bytes,
        data: bytes,
    ) -> bool:
        """
        Check a signature.

        :return:
            ``True`` if the signature is valid, ``False`` otherwise.
        """
        raise NotImplementedError


def _curve_for_private_key(private_key) -> NamedCurve:
    curve_name = private_key.curve.name
    for curve in NAMED_CURVES.values():
        if curve.name == curve_name:
            return curve
    raise UnsupportedCurveError(f"Curve {curve_name} is not supported.")


class CryptographyEngine(CryptoEngine):
    """
    :class:`CryptoEngine` implementation backed by pyca/cryptography.
    Private keys are expected to be pyca/cryptography key objects.
    """

    async def default_signature_parameters(
        self, private_key, hash_algorithm: str, prefer_pss: bool = False
    ) -> SigningSetup:
        hash_algorithm = hash_algorithm.lower()
        if isinstance(private_key, rsa.RSAPrivateKey):
            if prefer_pss:
                md = get_pyca_cryptography_hash(hash_algorithm)
                # the PSS salt calculation function is not in the .pyi file
                # noinspection PyUnresolvedReferences
                salt_length = padding.calculate_max_pss_salt_length(
                    private_key, md
                )
                pss = PSSParameters(
                    hash_algorithm=hash_algorithm,
                    mgf_hash_algorithm=hash_algorithm,
                    salt_length=salt_length,
                )
                return SigningSetup(
                    signature_algorithm=signature_algorithm_for(
                        SignatureScheme.RSASSA_PSS, hash_algorithm, pss
                    ),
                    parameters=SignatureParameters(
                        scheme=SignatureScheme.RSASSA_PSS,
                        hash_algorithm=hash_algorithm,
                        pss=pss,
                    ),
                )
            scheme = SignatureScheme.RSASSA_PKCS1V15
            curve = None
        elif isinstance(private_key, ec.EllipticCurvePrivateKey):
            scheme = SignatureScheme.ECDSA
            curve = _curve_for_private_key(private_key)
        else:
            raise UnsupportedAlgorithmError(
                f"Keys of type {type(private_key).__name__} are not supported."
            )
        return SigningSetup(
            signature_algorithm=signature_algorithm_for(scheme, hash_algorithm),
            parameters=SignatureParameters(
                scheme=scheme, hash_algorithm=hash_algorithm, named_curve=curve
            ),
        )

    async def import_public_key(
        self,
        public_key_info: PublicKeyInfo,
        import_params: KeyImportParameters,
    ):
        # pyca/cryptography can't load PSS-exclusive keys without some help
        if public_key_info.algorithm.algorithm == RSASSA_PSS:
            public_key_info = PublicKeyInfo(
                algorithm=AlgorithmIdentifier(
                    algorithm=RSA_ENCRYPTION, parameters=b'\x05\x00'
                ),
                public_key=public_key_info.public_key,
            )
        try:
            public_key = serialization.load_der_public_key(
                public_key_info.dump()
            )
        except (ValueError, UnsupportedAlgorithm) as e:
            raise CryptoEngineError(f"Failed to import public key: {e}") from e

        if import_params.scheme is SignatureScheme.ECDSA:
            if not isinstance(public_key, ec.EllipticCurvePublicKey):
                raise CryptoEngineError("Expected an EC public key")
            expected_curve = import_params.named_curve
            if (
                expected_curve is not None
                and public_key.curve.name != expected_curve.name
            ):
                raise CryptoEngineError(
                    f"Public key is on curve {public_key.curve.name}, "
                    f"expected {expected_curve.name}"
                )
        elif not isinstance(public_key, rsa.RSAPublicKey):
            raise CryptoEngineError("Expected an RSA public key")
        return public_key

    def _padding(self, parameters: SignatureParameters):
        if parameters.scheme is SignatureScheme.RSASSA_PSS:
            pss = parameters.pss or PSSParameters()
            return padding.PSS(
                mgf=padding.MGF1(
                    algorithm=get_pyca_cryptography_hash(
                        pss.mgf_hash_algorithm
                    )
                ),
                salt_length=pss.salt_length,
            )
        return padding.PKCS1v15()

    def sign_sync(
        self, data: bytes, private_key, parameters: SignatureParameters
    ) -> bytes:
        """
        Synchronous signing implementation.
        """
        md = get_pyca_cryptography_hash(parameters.hash_algorithm)
        if parameters.scheme is SignatureScheme.ECDSA:
            if parameters.named_curve is None:
                raise CryptoEngineError("ECDSA signing requires a named curve")
            try:
                der_signature = private_key.sign(data, ec.ECDSA(md))
            except (ValueError, TypeError, UnsupportedAlgorithm) as e:
                raise CryptoEngineError(f"Signing operation failed: {e}") from e
            return ecdsa_der_to_raw(
                der_signature, parameters.named_curve.coordinate_size
            )
        try:
            return private_key.sign(data, self._padding(parameters), md)
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise CryptoEngineError(f"Signing operation failed: {e}") from e

    def verify_sync(
        self,
        parameters: SignatureParameters,
        public_key,
        signature: bytes,
        data: bytes,
    ) -> bool:
        """
        Synchronous verification implementation.
        """
        md = get_pyca_cryptography_hash(parameters.hash_algorithm)
        if parameters.scheme is SignatureScheme.ECDSA:
            args = (ecdsa_raw_to_der(signature), data, ec.ECDSA(md))
        else:
            args = (signature, data, self._padding(parameters), md)
        try:
            public_key.verify(*args)
        except InvalidSignature:
            logger.debug("Signature check failed", exc_info=True)
            return False
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise CryptoEngineError(
                f"Verification operation failed: {e}"
            ) from e
        return True

    async def sign(
        self, data: bytes, private_key, parameters: SignatureParameters
    ) -> bytes:
        return self.sign_sync(data, private_key, parameters)

    async def verify(
        self,
        parameters: SignatureParameters,
        public_key,
        signature: bytes,
        data: bytes,
    ) -> bool:
        return self.verify_sync(parameters, public_key, signature, data)
