from dataclasses import dataclass
from typing import Dict, Optional

import yaml

from crlkit.config.errors import ConfigurationError
from crlkit.config.logging import LogConfig, parse_logging_config
from crlkit.config.processing import CRLProcessingSettings

__all__ = ['CLIConfig', 'CLIRootConfig', 'parse_cli_config']


@dataclass
class CLIConfig:
    """
    CLI configuration settings.
    """

    processing: CRLProcessingSettings
    """
    Settings that govern how CRLs are decoded and signed.
    """

    raw_config: dict
    """
    The raw config data parsed into a Python dictionary.
    """


@dataclass(frozen=True)
class CLIRootConfig:
    """
    Config settings that are only relevant to the CLI root and are not exposed
    to subcommands.
    """

    config: CLIConfig
    """
    General CLI config.
    """

    log_config: Dict[Optional[str], LogConfig]
    """
    Per-module logging configuration. The keys in this dictionary are
    module names, the :class:`.LogConfig` values define the logging settings.

    The ``None`` key houses the configuration for the root logger, if any.
    """


def parse_cli_config(yaml_str) -> CLIRootConfig:
    """
    Parse a YAML configuration document.

    :param yaml_str:
        The YAML data, as a string or a stream.
    :return:
        A :class:`CLIRootConfig`.
    :raises ConfigurationError:
        if the configuration is invalid.
    """
    try:
        config_dict = yaml.safe_load(yaml_str) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Failed to parse YAML configuration: {e}")
    if not isinstance(config_dict, dict):
        raise ConfigurationError("Configuration must be a YAML mapping")
    log_config = parse_logging_config(config_dict.get('logging', {}))
    processing = CRLProcessingSettings.from_config(
        config_dict.get('processing', {})
    )
    return CLIRootConfig(
        config=CLIConfig(processing=processing, raw_config=config_dict),
        log_config=log_config,
    )
