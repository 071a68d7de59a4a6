import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from . import codec, signing
from .model import (
    AlgorithmIdentifier,
    PublicKeyInfo,
    RevokedCertificate,
    TbsCertList,
)

if TYPE_CHECKING:
    from .certs import CertificateInfo
    from .config import CRLProcessingSettings
    from .engine import CryptoEngine

__all__ = ['CertificateList']

logger = logging.getLogger(__name__)


@dataclass
class CertificateList:
    """
    A certificate revocation list, as defined in :rfc:`5280`, section 5.1.

    When a CRL is loaded from its encoded form, the encoding of the signed
    body is retained in :attr:`tbs_bytes`, and reused as-is when the CRL is
    encoded again (unless asked otherwise). Modifying the fields of
    :attr:`tbs` therefore has no effect on the encoded form until the CRL
    is signed again.
    """

    tbs: TbsCertList

    tbs_bytes: bytes = b''
    """
    Exact encoding of the signed body. Empty if the CRL was constructed
    programmatically and has not been signed yet.
    """

    signature_algorithm: Optional[AlgorithmIdentifier] = None
    """
    The algorithm with which :attr:`signature_value` was produced.
    """

    signature_value: bytes = b''
    """
    The signature. For ECDSA, this is a DER-encoded ``ECDSA-Sig-Value``.
    """

    @classmethod
    def load(
        cls, data: bytes, settings: Optional['CRLProcessingSettings'] = None
    ) -> 'CertificateList':
        """
        Load a CRL from its BER or DER encoding.

        :param data:
            The encoded CRL.
        :param settings:
            Processing settings to apply.
        :raises DecodeError:
            if the data is not a well-formed CRL.
        """
        return codec.decode_certificate_list(data, settings)

    def to_asn1(self, regenerate_tbs: bool = False):
        return codec.certificate_list_to_asn1(self, regenerate_tbs)

    def dump(self, regenerate_tbs: bool = False) -> bytes:
        """
        Encode the CRL.

        :param regenerate_tbs:
            Encode the signed body afresh from the current field values
            instead of reusing the retained encoding. Note that this will
            usually invalidate the signature.
        """
        return codec.dump(self, regenerate_tbs)

    def to_dict(self) -> dict:
        """
        Export the CRL as a JSON-compatible dictionary.
        """
        return codec.export_certificate_list(self)

    def find_revoked_entry(
        self, cert: 'CertificateInfo'
    ) -> Optional[RevokedCertificate]:
        """
        Look up the revocation entry for a certificate.

        :param cert:
            The certificate to look for.
        :return:
            The matching entry, or ``None`` if the certificate was not issued
            by the issuer of this CRL, or is not on the list.
        """
        if cert.issuer != self.tbs.issuer:
            logger.debug(
                f"Certificate issuer {cert.issuer} does not match CRL "
                f"issuer {self.tbs.issuer}"
            )
            return None
        if self.tbs.revoked_certificates is None:
            return None
        for entry in self.tbs.revoked_certificates:
            if entry.serial_number == cert.serial_number:
                return entry
        return None

    def is_revoked(self, cert: 'CertificateInfo') -> bool:
        """
        Check whether a certificate appears on this CRL.
        """
        return self.find_revoked_entry(cert) is not None

    async def async_sign(
        self,
        private_key,
        hash_algorithm: str = 'sha256',
        *,
        engine: Optional['CryptoEngine'] = None,
        prefer_pss: bool = False,
    ):
        """
        Sign the CRL. See :func:`~crlkit.signing.async_sign_crl`.
        """
        await signing.async_sign_crl(
            self,
            private_key,
            hash_algorithm,
            engine=engine,
            prefer_pss=prefer_pss,
        )

    def sign(
        self,
        private_key,
        hash_algorithm: str = 'sha256',
        *,
        engine: Optional['CryptoEngine'] = None,
        prefer_pss: bool = False,
    ):
        signing.sign_crl(
            self,
            private_key,
            hash_algorithm,
            engine=engine,
            prefer_pss=prefer_pss,
        )

    async def async_verify(
        self,
        *,
        issuer_certificate: Optional['CertificateInfo'] = None,
        public_key_info: Optional[PublicKeyInfo] = None,
        engine: Optional['CryptoEngine'] = None,
    ) -> bool:
        """
        Verify the signature on the CRL.
        See :func:`~crlkit.signing.async_verify_crl`.
        """
        return await signing.async_verify_crl(
            self,
            issuer_certificate=issuer_certificate,
            public_key_info=public_key_info,
            engine=engine,
        )

    def verify(
        self,
        *,
        issuer_certificate: Optional['CertificateInfo'] = None,
        public_key_info: Optional[PublicKeyInfo] = None,
        engine: Optional['CryptoEngine'] = None,
    ) -> bool:
        return signing.verify_crl(
            self,
            issuer_certificate=issuer_certificate,
            public_key_info=public_key_info,
            engine=engine,
        )
