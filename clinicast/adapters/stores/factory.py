import logging

from clinicast.core.domain.settings import EngineSettings
from clinicast.core.ports.state_store import StateStore

logger = logging.getLogger(__name__)


def build_store(settings: EngineSettings) -> StateStore:
    """
    Factory to create the state store selected by settings.store_type.
    """
    if settings.store_type == "redis":
        from clinicast.adapters.stores.redis_store import RedisStateStore
        logger.info(f"Using Redis state store at {settings.redis_url}")
        return RedisStateStore(settings)

    from clinicast.adapters.stores.memory_store import InMemoryStateStore
    logger.info("Using in-memory state store")
    return InMemoryStateStore()
