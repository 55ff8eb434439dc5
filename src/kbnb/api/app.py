"""ASGI entry point: uvicorn kbnb.api.app:app"""

from .factory import create_app

app = create_app()
