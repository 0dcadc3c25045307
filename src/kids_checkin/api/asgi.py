"""ASGI entrypoint for the kids check-in API."""

from kids_checkin.api.app import create_app
from kids_checkin.containers import build_container

app = create_app(build_container())
