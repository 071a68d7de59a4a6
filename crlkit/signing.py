"""
Signing and verification pipelines for CRLs.

Both pipelines run their stages strictly in sequence. The cryptographic
work is delegated to a :class:`~crlkit.engine.CryptoEngine`.
"""

import asyncio
import logging
from typing import TYPE_CHECKING, Optional

from .algorithms import (
    SignatureScheme,
    ecdsa_der_to_raw,
    ecdsa_raw_to_der,
    key_import_parameters,
    parse_pss_parameters,
    resolve_by_oid,
    resolve_hash_algorithm,
)
from .asn1_util import der_encode
from .codec import encode_tbs
from .engine import CryptoEngine, CryptographyEngine, SignatureParameters
from .errors import MissingKeyMaterialError, UntrustedCriticalExtensionError
from .extensions import extension_name
from .model import PublicKeyInfo, TbsCertList

if TYPE_CHECKING:
    from .certs import CertificateInfo
    from .crl import CertificateList

__all__ = [
    'async_sign_crl',
    'async_verify_crl',
    'sign_crl',
    'verify_crl',
    'check_critical_extensions',
]

logger = logging.getLogger(__name__)


def check_critical_extensions(tbs: TbsCertList):
    """
    Make sure that every critical extension in a CRL was understood.

    :raises UntrustedCriticalExtensionError:
        if there is a critical extension that was not understood, either
        on the CRL itself or on one of its entries.
    """
    extensions = list(tbs.critical_extensions)
    for entry in tbs.revoked_certificates or ():
        extensions.extend(
            ext for ext in (entry.entry_extensions or ()) if ext.critical
        )
    for ext in extensions:
        if not ext.understood:
            raise UntrustedCriticalExtensionError(
                f"CRL contains critical extension "
                f"{extension_name(ext.extn_id)} that was not understood.",
                ext.extn_id,
            )


async def async_sign_crl(
    crl: 'CertificateList',
    private_key,
    hash_algorithm: str = 'sha256',
    *,
    engine: Optional[CryptoEngine] = None,
    prefer_pss: bool = False,
):
    """
    Sign a CRL in place.

    The signature algorithm is chosen by the engine, and recorded both inside
    the signed body and in the outer structure. The body is then encoded
    afresh, and the result replaces any previously retained encoding.

    :param crl:
        The CRL to sign.
    :param private_key:
        The signing key, in a form the engine understands.
    :param hash_algorithm:
        The digest algorithm to use.
    :param engine:
        The crypto engine to use. Defaults to :class:`.CryptographyEngine`.
    :param prefer_pss:
        Use RSASSA-PSS when signing with an RSA key.
    :raises MissingKeyMaterialError:
        if no private key is provided.
    """
    if private_key is None:
        raise MissingKeyMaterialError("A private key is required for signing.")
    engine = engine or CryptographyEngine()

    setup = await engine.default_signature_parameters(
        private_key, hash_algorithm, prefer_pss=prefer_pss
    )
    logger.debug(
        f"Signing CRL with {setup.parameters.scheme.value} "
        f"and {setup.parameters.hash_algorithm}"
    )
    crl.tbs.signature = setup.signature_algorithm
    crl.signature_algorithm = setup.signature_algorithm
    crl.tbs_bytes = der_encode(encode_tbs(crl.tbs))

    signature = await engine.sign(crl.tbs_bytes, private_key, setup.parameters)
    if setup.parameters.scheme is SignatureScheme.ECDSA:
        signature = ecdsa_raw_to_der(signature)
    crl.signature_value = signature


async def async_verify_crl(
    crl: 'CertificateList',
    *,
    issuer_certificate: Optional['CertificateInfo'] = None,
    public_key_info: Optional[PublicKeyInfo] = None,
    engine: Optional[CryptoEngine] = None,
) -> bool:
    """
    Verify the signature on a CRL.

    Exactly one of ``issuer_certificate`` and ``public_key_info`` must be
    provided. If an issuer certificate is given, its subject must match the
    issuer of the CRL.

    Critical extensions that were not understood make verification fail.
    This applies to entry extensions as well as CRL extensions, so an
    indirect CRL with a critical ``certificateIssuer`` entry extension only
    verifies if an interpreter for that extension was supplied through
    :attr:`.CRLProcessingSettings.custom_interpreters`.

    :param crl:
        The CRL to verify.
    :param issuer_certificate:
        The certificate of the CRL issuer.
    :param public_key_info:
        The public key of the CRL issuer.
    :param engine:
        The crypto engine to use. Defaults to :class:`.CryptographyEngine`.
    :return:
        ``True`` if the signature is valid and there are no critical
        extensions that were not understood, ``False`` otherwise.
    :raises MissingKeyMaterialError:
        if neither or both of the key sources are provided.
    :raises UnsupportedAlgorithmError:
        if the signature algorithm, digest or curve is not supported.
    """
    if (issuer_certificate is None) == (public_key_info is None):
        raise MissingKeyMaterialError(
            "Exactly one of an issuer certificate and a public key must be "
            "provided to verify a CRL."
        )
    engine = engine or CryptographyEngine()

    if issuer_certificate is not None:
        if issuer_certificate.subject != crl.tbs.issuer:
            logger.info(
                f"Certificate subject {issuer_certificate.subject} does not "
                f"match CRL issuer {crl.tbs.issuer}"
            )
            return False
        public_key_info = issuer_certificate.public_key_info

    try:
        check_critical_extensions(crl.tbs)
    except UntrustedCriticalExtensionError as e:
        logger.warning(e.failure_message)
        return False

    signature_algorithm = crl.signature_algorithm
    if signature_algorithm is None or not crl.tbs_bytes:
        logger.warning("CRL has not been signed; cannot verify it.")
        return False
    if crl.tbs.signature != signature_algorithm:
        logger.warning(
            "Signature algorithm in the signed body of the CRL does not match "
            "the outer signature algorithm. Going with the latter."
        )

    descriptor = resolve_by_oid(signature_algorithm.algorithm)
    hash_algorithm = resolve_hash_algorithm(signature_algorithm)
    import_params = key_import_parameters(descriptor, public_key_info)
    public_key = await engine.import_public_key(public_key_info, import_params)

    signature = crl.signature_value
    pss = None
    if descriptor.scheme is SignatureScheme.ECDSA:
        signature = ecdsa_der_to_raw(
            signature, import_params.named_curve.coordinate_size
        )
    elif descriptor.scheme is SignatureScheme.RSASSA_PSS:
        pss = parse_pss_parameters(signature_algorithm.parameters)

    parameters = SignatureParameters(
        scheme=descriptor.scheme,
        hash_algorithm=hash_algorithm,
        pss=pss,
        named_curve=import_params.named_curve,
    )
    result = await engine.verify(
        parameters, public_key, signature, crl.tbs_bytes
    )
    logger.debug(f"Signature verification result: {result}")
    return result


def sign_crl(crl: 'CertificateList', private_key, *args, **kwargs):
    """
    Synchronous wrapper around :func:`async_sign_crl`.
    """
    asyncio.run(async_sign_crl(crl, private_key, *args, **kwargs))


def verify_crl(crl: 'CertificateList', **kwargs) -> bool:
    """
    Synchronous wrapper around :func:`async_verify_crl`.
    """
    return asyncio.run(async_verify_crl(crl, **kwargs))
