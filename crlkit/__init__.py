from .certs import CertificateInfo
from .config import CRLProcessingSettings
from .crl import CertificateList
from .engine import CryptoEngine, CryptographyEngine
from .errors import (
    CRLError,
    CryptoEngineError,
    DecodeError,
    EncodeError,
    MalformedKeyParametersError,
    MalformedParametersError,
    MissingKeyMaterialError,
    SchemaMismatchError,
    UnsupportedAlgorithmError,
    UnsupportedCurveError,
    UntrustedCriticalExtensionError,
)
from .model import (
    AlgorithmIdentifier,
    Extension,
    PublicKeyInfo,
    RevokedCertificate,
    TbsCertList,
    Time,
    TimeType,
)
from .names import Name
from .version import __version__, __version_info__

__all__ = [
    '__version__',
    '__version_info__',
    'CertificateList',
    'TbsCertList',
    'RevokedCertificate',
    'Extension',
    'AlgorithmIdentifier',
    'Time',
    'TimeType',
    'PublicKeyInfo',
    'Name',
    'CertificateInfo',
    'CRLProcessingSettings',
    'CryptoEngine',
    'CryptographyEngine',
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
