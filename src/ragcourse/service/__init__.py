"""Service layer - wiring of providers, stores and pipelines.

- StartupConfig / resolve_startup: activation flags for one process
- Runtime / build_runtime: the assembled components
"""

from ragcourse.config.startup import StartupConfig, resolve_startup
from ragcourse.service.runtime import Runtime, build_runtime

__all__ = [
    "Runtime",
    "StartupConfig",
    "build_runtime",
    "resolve_startup",
]
