"""API router registration helpers.

Routers are imported lazily inside `register_routes` so importing a submodule
(e.g. in tests) does not pull in every route module and its services.
"""

from fastapi import FastAPI


def register_routes(app: FastAPI) -> None:
    """Attach all API routers (lazy imports)."""
    from reelroom.api.admin import router as admin_router
    from reelroom.api.chat import router as chat_router
    from reelroom.api.projects import router as projects_router
    from reelroom.api.requests import router as requests_router
    from reelroom.api.system import router as system_router

    routers = [
        system_router,
        chat_router,
        projects_router,
        requests_router,
        admin_router,
    ]
    for router in routers:
        app.include_router(router)
