"""FastAPI server adapter for bbp-playbook.

This module exposes the engine's command surface as a JSON API.

Design intent:
- Keep readiness and generation logic in `bbp_playbook.engine.*`
- Keep server-specific concerns (routing, CORS, status codes) here
"""

from __future__ import annotations

__all__ = ["create_app"]

from bbp_playbook.server.app import create_app
