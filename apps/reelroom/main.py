import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Environment is loaded by Pydantic Settings (see reelroom.core.settings).
from reelroom.api import register_routes
from reelroom.core.dependencies import (
    get_chatroom_manager,
    get_identity_provider,
    get_join_request_service,
    get_message_store,
    get_project_store,
    get_user_directory,
)
from reelroom.core.exceptions import register_exception_handlers
from reelroom.core.logging import setup_logging
from reelroom.core.settings import settings

# Initialize logging early so all modules inherit the handlers/level
setup_logging(settings.log_level or settings.log_level_fallback)

app = FastAPI(title="Reelroom API")
register_exception_handlers(app)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_routes(app)

logger = logging.getLogger(__name__)
logger.info("Reelroom API initialized")

_INDEXED_SERVICES = {
    "Users": get_user_directory,
    "Projects": get_project_store,
    "ChatMessages": get_message_store,
    "Chatrooms": get_chatroom_manager,
    "JoinRequests": get_join_request_service,
}


@app.on_event("startup")
def _require_signing_key() -> None:
    """Refuse to boot without SECRET_KEY; tokens cannot be signed or verified."""
    get_identity_provider()


@app.on_event("startup")
def _ensure_indexes_on_startup() -> None:
    """Ensure Mongo indexes are created once at boot.

    Best-effort: logs a warning on failure but does not block app startup.
    """
    for label, provider in _INDEXED_SERVICES.items():
        try:
            provider().ensure_indexes()
            logger.info("%s indexes ensured", label)
        except Exception as exc:  # pragma: no cover - external dependency
            logger.warning("Failed to ensure %s indexes: %s", label, exc)
