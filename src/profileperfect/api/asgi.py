"""ASGI entrypoint for the ProfilePerfect API."""

from profileperfect.api.app import create_app
from profileperfect.containers import build_container

app = create_app(build_container())
