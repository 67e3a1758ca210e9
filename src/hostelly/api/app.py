"""ASGI entrypoint (hostelly.api.app:app); role from APP_ROLE."""

from hostelly.api.factory import create_app

app = create_app()
