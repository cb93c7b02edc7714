from .loader import load_settings
from .schema import LoggingConfig, PathsConfig, SchedulerConfig, SequencerConfig, Settings

__all__ = [
    "LoggingConfig",
    "PathsConfig",
    "SchedulerConfig",
    "SequencerConfig",
    "Settings",
    "load_settings",
]
