"""Startup configuration: which components are active for this process.

Resolved once from the loaded AppConfig and handed by reference to the
knowledge base loader and the runtime builder. Nothing reads profiles after
this point.
"""

from dataclasses import dataclass

from ragcourse.config.schema import AppConfig, VectorBackend

# Profiles with a built-in meaning; any profile may also carry a TOML section
INGESTION_PROFILE = "rag"
NETWORKED_PROFILES = frozenset({"networked", "redis"})


@dataclass(frozen=True)
class StartupConfig:
    """Activation flags for one process."""

    ingestion_enabled: bool = False
    backend: VectorBackend = VectorBackend.IN_MEMORY


def resolve_startup(config: AppConfig) -> StartupConfig:
    """Derive the startup flags from configuration and active profiles.

    - the ``rag`` profile, or ``knowledge_base.ingestion_enabled``, turns the
      loader on
    - the ``networked`` profile (alias ``redis``) selects the networked
      backend; otherwise ``vector_store.backend`` decides
    """
    profiles = set(config.active_profiles)

    ingestion_enabled = config.knowledge_base.ingestion_enabled or INGESTION_PROFILE in profiles
    if profiles & NETWORKED_PROFILES:
        backend = VectorBackend.NETWORKED
    else:
        backend = VectorBackend(config.vector_store.backend)

    return StartupConfig(ingestion_enabled=ingestion_enabled, backend=backend)
