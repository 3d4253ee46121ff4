import os


def GetEnv(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def GetIntEnv(name: str, default: int) -> int:
    raw = GetEnv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer") from exc


def GetFloatEnv(name: str, default: float) -> float:
    raw = GetEnv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be a number") from exc


def GetBoolEnv(name: str, default: bool = False) -> bool:
    raw = GetEnv(name)
    if raw is None:
        return default
    return raw.lower() in {"1", "true", "yes", "on"}


class AlloSettings:
    """Process-wide settings, read from the environment on construction."""

    def __init__(self) -> None:
        self.ChannelBackend = (GetEnv("CHANNEL_BACKEND", "local") or "local").lower()
        self.RedisUrl = GetEnv("REDIS_URL", "redis://localhost:6379/0")
        self.ChannelPrefix = GetEnv("CHANNEL_PREFIX", "allo")
        self.ChannelTimeoutSeconds = GetFloatEnv("CHANNEL_TIMEOUT_SECONDS", 5.0)
        self.ChannelQueueSize = GetIntEnv("CHANNEL_QUEUE_SIZE", 16)
        self.SchedulerEnabled = GetBoolEnv("SCHEDULER_ENABLED", default=True)
        self.SchedulerRestartDelaySeconds = GetFloatEnv("SCHEDULER_RESTART_DELAY_SECONDS", 5.0)
        self.RunMigrations = GetBoolEnv("RUN_MIGRATIONS", default=False)
        self.SessionCookieName = GetEnv("SESSION_COOKIE_NAME", "allo_session")
        self.SessionCookieSecure = GetBoolEnv("SESSION_COOKIE_SECURE", default=False)


Settings = AlloSettings()
