from fastapi import APIRouter, FastAPI

from .chat import router as chat_router, scaffold_router as chat_scaffold_router
from .events import router as events_router, scaffold_router as events_scaffold_router
from .notifications import router as notifications_router, scaffold_router as notifications_scaffold_router
from .profile import router as profile_router, scaffold_router as profile_scaffold_router
from .questionnaires import router as questionnaires_router, scaffold_router as questionnaires_scaffold_router
from .requests import router as requests_router, scaffold_router as requests_scaffold_router


def include_modular_routers(app: FastAPI) -> None:
    app.include_router(requests_router, tags=["requests"])
    app.include_router(questionnaires_router, tags=["questionnaires"])
    app.include_router(profile_router, tags=["profile"])
    app.include_router(chat_router, tags=["chat"])
    app.include_router(notifications_router, tags=["notifications"])
    app.include_router(events_router, tags=["events"])

    app.include_router(requests_scaffold_router, prefix="/_scaffold/requests", tags=["scaffold-requests"])
    app.include_router(questionnaires_scaffold_router, prefix="/_scaffold/questionnaires", tags=["scaffold-questionnaires"])
    app.include_router(profile_scaffold_router, prefix="/_scaffold/profile", tags=["scaffold-profile"])
    app.include_router(chat_scaffold_router, prefix="/_scaffold/chat", tags=["scaffold-chat"])
    app.include_router(notifications_scaffold_router, prefix="/_scaffold/notifications", tags=["scaffold-notifications"])
    app.include_router(events_scaffold_router, prefix="/_scaffold/events", tags=["scaffold-events"])


__all__ = ["include_modular_routers", "APIRouter"]
