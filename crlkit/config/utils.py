"""
Helpers to populate frozen dataclasses from user-supplied configuration
dictionaries, typically read from the CLI's YAML file.

Configuration keys are written with hyphens (``default-hash-algorithm``),
attribute names with underscores (``default_hash_algorithm``). Both forms
are accepted on input.
"""

import dataclasses
import re
from typing import (
    Callable,
    Dict,
    Iterable,
    Iterator,
    Optional,
    Set,
    Union,
    get_args,
    get_origin,
)

from .errors import ConfigurationError

__all__ = [
    'ConfigurableMixin',
    'DOTTED_OID',
    'check_config_keys',
    'enforce_required_keys',
    'process_oid',
    'process_oids',
]

DOTTED_OID = re.compile(r'\d(\.\d+)+')


def _configurable_type(annotation) -> Optional[type]:
    # X or Optional[X], where X is a ConfigurableMixin subclass
    if get_origin(annotation) is Union:
        args = [a for a in get_args(annotation) if a is not type(None)]
        if len(args) != 1:
            return None
        annotation = args[0]
    if isinstance(annotation, type) and issubclass(
        annotation, ConfigurableMixin
    ):
        return annotation
    return None


def _as_config_keys(names: Iterable[str]) -> Set[str]:
    return {name.replace('_', '-') for name in names}


def _plural_key(keys) -> str:
    return 'key' if len(keys) == 1 else 'keys'


@dataclasses.dataclass(frozen=True)
class ConfigurableMixin:
    """Mixin for dataclasses that can be instantiated from configuration."""

    @classmethod
    def process_entries(cls, config_dict):
        """
        Hook to convert raw configuration values into the types expected
        by the dataclass, in place.

        Keys have already been normalised to attribute names when this is
        called. Overrides should call ``super().process_entries()`` and leave
        keys they do not handle alone.

        :param config_dict:
            The configuration dictionary.
        :raises ConfigurationError:
            if a value cannot be converted.
        """

    @classmethod
    def _load_nested(cls, config_dict: Dict):
        for fld in dataclasses.fields(cls):
            nested_type = _configurable_type(fld.type)
            if nested_type is None or fld.name not in config_dict:
                continue
            try:
                config_dict[fld.name] = nested_type.from_config(
                    config_dict[fld.name]
                )
            except ConfigurationError as e:
                raise ConfigurationError(
                    f"Error while processing configurable field "
                    f"'{fld.name}': {e.msg}"
                ) from e

    @classmethod
    def from_config(cls, config_dict):
        """
        Build an instance of this class from a configuration dictionary.

        :param config_dict:
            Dictionary with configuration values.
        :return:
            An instance of the class on which this method is called.
        :raises ConfigurationError:
            if the dictionary has unknown keys, lacks required ones, or
            contains values that cannot be processed.
        """
        fields = dataclasses.fields(cls)
        check_config_keys(cls.__name__, {f.name for f in fields}, config_dict)
        kwargs = {key.replace('-', '_'): v for key, v in config_dict.items()}
        cls._load_nested(kwargs)
        cls.process_entries(kwargs)
        required = {
            f.name
            for f in fields
            if f.default is dataclasses.MISSING
            and f.default_factory is dataclasses.MISSING
        }
        enforce_required_keys(cls.__name__, required, kwargs)
        return cls(**kwargs)


def check_config_keys(config_name, expected_keys, config_dict):
    """
    Make sure that ``config_dict`` is a dictionary, and that it does not
    contain keys outside ``expected_keys``.
    """
    if not isinstance(config_dict, dict):
        raise ConfigurationError(
            f"{config_name} requires a dictionary to initialise."
        )
    unexpected = _as_config_keys(config_dict) - _as_config_keys(expected_keys)
    if unexpected:
        raise ConfigurationError(
            f"Unexpected {_plural_key(unexpected)} in configuration for "
            f"{config_name}: {', '.join(sorted(unexpected))}."
        )


def enforce_required_keys(config_name, required_keys, config_dict):
    missing = _as_config_keys(required_keys) - _as_config_keys(config_dict)
    if missing:
        raise ConfigurationError(
            f"Missing required {_plural_key(missing)} in configuration for "
            f"{config_name}: {', '.join(sorted(missing))}."
        )


def process_oid(resolve: Callable[[str], str], id_string, param_name) -> str:
    """
    Turn a friendly name or a dotted OID into a dotted OID.

    :param resolve:
        Function mapping friendly names to dotted OIDs, raising
        :class:`KeyError` for unknown names.
    :param id_string:
        The value to process.
    :param param_name:
        Name of the configuration parameter, for error reporting.
    """
    if not isinstance(id_string, str):
        raise ConfigurationError(
            f"Identifier '{repr(id_string)}' in '{param_name}' is not a string."
        )
    try:
        return resolve(id_string)
    except KeyError:
        kind = 'OID' if DOTTED_OID.fullmatch(id_string) else 'name'
        raise ConfigurationError(
            f"'{id_string}' in '{param_name}' is not a supported {kind}."
        )


def process_oids(
    resolve: Callable[[str], str], strings, param_name
) -> Iterator[str]:
    if isinstance(strings, str):
        strings = (strings,)
    elif not isinstance(strings, (list, tuple)):
        raise ConfigurationError(
            f"'{param_name}' must be specified as a list of strings, "
            f"or a string."
        )
    for id_string in strings:
        yield process_oid(resolve, id_string, param_name)
