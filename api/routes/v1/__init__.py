"""Version 1 routes, mounted under /api/v1."""

from flask import Blueprint

v1 = Blueprint("v1", __name__)

# Route modules register themselves on the blueprint
from api.routes.v1 import requirements, questions, estimates, rag  # noqa: E402,F401
