from envoy_read.engine import ReadResult, inspect_proxy, read_config
from envoy_read.errors import (
    EnvoyReadError,
    MalformedDocument,
    MalformedSection,
    UnknownOutputMode,
    UnsupportedFilterCombination,
)
from envoy_read.models import FilterParams, Kind
from envoy_read.render import OutputMode

__version__ = "0.1.0"

__all__ = [
    "EnvoyReadError",
    "FilterParams",
    "Kind",
    "MalformedDocument",
    "MalformedSection",
    "OutputMode",
    "ReadResult",
    "UnknownOutputMode",
    "UnsupportedFilterCombination",
    "inspect_proxy",
    "read_config",
]
