from pathlib import Path
import logging
import time

from alembic import command
from alembic.config import Config

from allo.db import BuildAdminConnectionUrl

logger = logging.getLogger("app.migrations")

BACKEND_DIR = Path(__file__).resolve().parents[2]


def BuildAlembicConfig(url: str | None = None) -> Config:
    config_path = BACKEND_DIR / "alembic.ini"
    if not config_path.exists():
        raise RuntimeError("Missing alembic.ini for migrations")

    alembic_cfg = Config(str(config_path))
    alembic_cfg.set_main_option("sqlalchemy.url", url or BuildAdminConnectionUrl())
    alembic_cfg.set_main_option("script_location", str(BACKEND_DIR / "alembic"))
    return alembic_cfg


def RunMigrations(url: str | None = None, revision: str = "head") -> None:
    alembic_cfg = BuildAlembicConfig(url)
    logger.info("running migrations revision=%s", revision)
    start = time.monotonic()
    try:
        command.upgrade(alembic_cfg, revision)
    except Exception:
        logger.exception("migrations failed revision=%s", revision)
        raise
    logger.info("migrations complete in %.1fs", time.monotonic() - start)
