"""Test framework detection: catalog, config parsing, resolution and conflicts.

The service layer (``testscout.detection.service``) depends on
``testscout.config`` and is imported from its own module.
"""

from testscout.detection.cache import CacheStats, DetectionCache
from testscout.detection.frameworks import (
    CYPRESS,
    DEFAULT_TEST_PATTERNS,
    DENO,
    FRAMEWORKS,
    JEST,
    NODE_TEST,
    PLAYWRIGHT,
    RSTEST,
    VITEST,
    get_framework,
)
from testscout.detection.signals import (
    FrameworkDescriptor,
    FrameworkResult,
    Resolution,
    ResolutionSource,
    TestPatternSet,
)

__all__ = [
    "CYPRESS",
    "DEFAULT_TEST_PATTERNS",
    "DENO",
    "FRAMEWORKS",
    "JEST",
    "NODE_TEST",
    "PLAYWRIGHT",
    "RSTEST",
    "VITEST",
    "CacheStats",
    "DetectionCache",
    "FrameworkDescriptor",
    "FrameworkResult",
    "Resolution",
    "ResolutionSource",
    "TestPatternSet",
    "get_framework",
]
