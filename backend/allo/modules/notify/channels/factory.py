import logging

from allo.core.config import AlloSettings, Settings
from allo.modules.notify.channels.base import ChannelBackend
from allo.modules.notify.channels.fixture import FixtureChannelBackend
from allo.modules.notify.channels.local import LocalChannelBackend
from allo.modules.notify.channels.redis_backend import RedisChannelBackend

logger = logging.getLogger("notify.channels")


def BuildChannelBackend(settings: AlloSettings | None = None) -> ChannelBackend:
    settings = settings or Settings
    name = settings.ChannelBackend
    if name == "redis":
        if not settings.RedisUrl:
            raise RuntimeError("REDIS_URL is required when CHANNEL_BACKEND=redis")
        backend: ChannelBackend = RedisChannelBackend(
            settings.RedisUrl,
            settings.ChannelPrefix,
            timeout_seconds=settings.ChannelTimeoutSeconds,
        )
    elif name == "local":
        backend = LocalChannelBackend(queue_size=settings.ChannelQueueSize)
    elif name == "fixture":
        backend = FixtureChannelBackend()
    else:
        raise RuntimeError(f"Unsupported CHANNEL_BACKEND: {name}")
    logger.info("channel backend ready backend=%s", backend.Name)
    return backend
