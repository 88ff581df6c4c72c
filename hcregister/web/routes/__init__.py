"""HC Register web route modules.

Each module exports a ``router`` (APIRouter) included by hcregister.web.app.
"""
