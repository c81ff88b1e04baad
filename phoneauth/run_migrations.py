"""
Run Alembic migrations programmatically.

Call before uvicorn starts (`python -m phoneauth.run_migrations`). Alembic
is a no-op when the schema is already at head.
"""
from pathlib import Path
import logging

from alembic import command
from alembic.config import Config

from .core.config import settings

logger = logging.getLogger(__name__)


def run_migrations() -> None:
    """Upgrade the DATABASE_URL database to head."""
    project_root = Path(__file__).resolve().parents[1]
    alembic_ini = project_root / "alembic.ini"

    if not alembic_ini.exists():
        logger.error(f"Alembic config not found at {alembic_ini}")
        raise FileNotFoundError(f"Alembic config not found at {alembic_ini}")

    cfg = Config(str(alembic_ini))
    cfg.set_main_option("script_location", str(project_root / "alembic"))
    cfg.set_main_option("sqlalchemy.url", settings.DATABASE_URL)

    database_url = settings.DATABASE_URL
    logger.info(f"Running Alembic migrations to head on {database_url.split('@')[-1]}")
    command.upgrade(cfg, "head")
    logger.info("Alembic migrations complete.")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    run_migrations()
