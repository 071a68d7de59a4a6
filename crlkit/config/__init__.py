from .errors import ConfigurationError
from .logging import LogConfig, StdLogOutput, parse_logging_config
from .processing import DEFAULT_PROCESSING_SETTINGS, CRLProcessingSettings
from .utils import ConfigurableMixin

__all__ = [
    'ConfigurationError',
    'ConfigurableMixin',
    'CRLProcessingSettings',
    'DEFAULT_PROCESSING_SETTINGS',
    'LogConfig',
    'StdLogOutput',
    'parse_logging_config',
]
