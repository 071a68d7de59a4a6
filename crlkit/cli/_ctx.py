from dataclasses import dataclass
from typing import Optional

from crlkit.cli.config import CLIConfig
from crlkit.config.processing import (
    DEFAULT_PROCESSING_SETTINGS,
    CRLProcessingSettings,
)


@dataclass
class CLIContext:
    """
    Context object that holds the settings gathered during the lifetime of
    a CLI invocation. This object is passed around as a ``click`` context
    object.
    """

    config: Optional[CLIConfig] = None
    """
    Values for CLI configuration settings.
    """

    @property
    def processing_settings(self) -> CRLProcessingSettings:
        if self.config is None:
            return DEFAULT_PROCESSING_SETTINGS
        return self.config.processing
