"""Request-scoped access to the collaborators wired up in create_app()"""

from fastapi import BackgroundTasks, Request

from .cache import Cache
from .services.embedding_service import EmbeddingProvider
from .services.notification_service import NotificationDispatcher


def get_notifier(request: Request, background_tasks: BackgroundTasks) -> NotificationDispatcher:
    """Notifications raised during the request are sent once the response is out"""
    return NotificationDispatcher(request.app.state.notification_sender, background_tasks.add_task)


def get_embedder(request: Request) -> EmbeddingProvider:
    return request.app.state.embedder


def get_cache(request: Request) -> Cache:
    return request.app.state.cache
