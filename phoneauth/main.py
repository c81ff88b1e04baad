import os
import sys
import logging

from dotenv import load_dotenv
from fastapi import FastAPI

load_dotenv()

from .core.config import settings, validate_config  # noqa: E402
from .core.env import is_local_env, get_env_name  # noqa: E402
from .exception_handlers import register_exception_handlers  # noqa: E402
from .middleware.logging import LoggingMiddleware  # noqa: E402
from .middleware.request_id import RequestIDMiddleware  # noqa: E402
from .routers import auth, account, admin  # noqa: E402

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger("phoneauth")


def _init_sentry():
    """Error tracking only outside local envs and only when SENTRY_DSN is set."""
    if not settings.SENTRY_DSN or is_local_env():
        return
    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration
    from sentry_sdk.integrations.logging import LoggingIntegration

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        integrations=[
            FastApiIntegration(),
            SqlalchemyIntegration(),
            LoggingIntegration(level=logging.INFO, event_level=logging.ERROR),
        ],
        traces_sample_rate=0.1,
        environment=get_env_name(),
        # Phone numbers and cookies stay out of Sentry
        send_default_pii=False,
    )
    logger.info(f"Sentry error tracking initialized for environment: {get_env_name()}")


def create_app() -> FastAPI:
    validate_config()
    _init_sentry()

    app = FastAPI(title="phoneauth", version="0.1.0")
    register_exception_handlers(app)

    # Added last runs first: request id must exist before logging reads it
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    @app.get("/healthz")
    async def healthz():
        return {"ok": True, "env": get_env_name()}

    app.include_router(auth.router)
    app.include_router(account.router)
    app.include_router(admin.router)

    logger.info(f"phoneauth started (ENV={os.getenv('ENV', 'dev')}, SMS_PROVIDER={settings.SMS_PROVIDER})")
    return app


app = create_app()
