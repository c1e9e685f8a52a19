"""Domain Types — enums for every closed set of values in the service.

Invariants:
    - All valid states encoded as Enums — no raw string matching
    - str Enums: serialize to JSON and env vars without custom encoders
"""

from enum import Enum


class RuntimeEnvironment(str, Enum):
    """Runtime mode. Development adds error details to responses."""
    DEVELOPMENT = "development"
    PRODUCTION = "production"
    TEST = "test"


class MetricsBackend(str, Enum):
    """Where metrics go once recorded."""
    CONSOLE = "console"
    FILE = "file"
    CLOUDWATCH = "cloudwatch"
    DISABLED = "disabled"


class ImageSourceKind(str, Enum):
    """Deployment mode for image listing/upload/delete."""
    BACKEND = "backend"
    LOCAL = "local"


class MetricUnit(str, Enum):
    """Units understood by the metric sinks."""
    MILLISECONDS = "Milliseconds"
    SECONDS = "Seconds"
    BYTES = "Bytes"
    COUNT = "Count"
    PERCENT = "Percent"
    NONE = "None"
