from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Mapping

from ..algorithms import DIGEST_SIZES
from ..extensions import (
    ExtensionInterpreter,
    get_interpreters,
    resolve_extension_type,
)
from .errors import ConfigurationError
from .utils import (
    DOTTED_OID,
    ConfigurableMixin,
    process_oid,
    process_oids,
)

__all__ = ['CRLProcessingSettings', 'DEFAULT_PROCESSING_SETTINGS']


@dataclass(frozen=True)
class CRLProcessingSettings(ConfigurableMixin):
    """
    Settings that govern how CRLs are decoded and signed.
    """

    understood_extensions: FrozenSet[str] = frozenset()
    """
    OIDs of the catalogue extensions that should be interpreted when decoding.
    Critical extensions that are not understood cause signature verification
    to fail. Catalogue names such as ``crl_number`` can be used in place of
    OIDs; they are resolved when the settings object is created.
    """

    default_hash_algorithm: str = 'sha256'
    """
    Digest algorithm to use when signing.
    """

    prefer_pss: bool = False
    """
    Sign with RSASSA-PSS instead of PKCS#1 v1.5 when using an RSA key.
    """

    custom_interpreters: Mapping[str, ExtensionInterpreter] = field(
        default_factory=dict, hash=False
    )
    """
    Additional interpreters supplied by the caller, keyed by dotted OID.
    Extensions listed here are always understood, and these interpreters
    take precedence over the catalogue. Not available from configuration
    files.
    """

    def __post_init__(self):
        for oid, interpreter in self.custom_interpreters.items():
            if not isinstance(oid, str) or not DOTTED_OID.fullmatch(oid):
                raise ConfigurationError(
                    f"Custom interpreters must be keyed by dotted OID, "
                    f"not {oid!r}."
                )
            if not callable(interpreter):
                raise ConfigurationError(
                    f"Custom interpreter for {oid} is not callable."
                )
        exts = self.understood_extensions
        if isinstance(exts, str):
            exts = (exts,)
        understood = frozenset(self._resolve_understood(ext) for ext in exts)
        object.__setattr__(self, 'understood_extensions', understood)

    def _resolve_understood(self, name_or_oid) -> str:
        if isinstance(name_or_oid, str) and (
            name_or_oid in self.custom_interpreters
        ):
            return name_or_oid
        return process_oid(
            resolve_extension_type, name_or_oid, 'understood-extensions'
        )

    @classmethod
    def process_entries(cls, config_dict):
        super().process_entries(config_dict)
        try:
            exts = config_dict['understood_extensions']
            config_dict['understood_extensions'] = frozenset(
                process_oids(
                    resolve_extension_type, exts, 'understood-extensions'
                )
            )
        except KeyError:
            pass

        try:
            md = config_dict['default_hash_algorithm']
        except KeyError:
            md = None
        if md is not None:
            if not isinstance(md, str) or md.lower() not in DIGEST_SIZES:
                raise ConfigurationError(
                    f"'{md}' is not a supported digest algorithm."
                )
            config_dict['default_hash_algorithm'] = md.lower()

        if 'prefer_pss' in config_dict:
            config_dict['prefer_pss'] = bool(config_dict['prefer_pss'])

    @property
    def interpreters(self) -> Dict[str, ExtensionInterpreter]:
        """
        Interpreters to use when decoding, by extension OID.
        """
        catalogue = get_interpreters(
            self.understood_extensions - set(self.custom_interpreters)
        )
        return {**catalogue, **self.custom_interpreters}


DEFAULT_PROCESSING_SETTINGS = CRLProcessingSettings()
