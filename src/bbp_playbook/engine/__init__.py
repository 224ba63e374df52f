"""Task/readiness engine components.

- Placeholder resolution and substitution
- The playbook model (tasks, modes, commands)
- Readiness evaluation against a per-scope completion record
- Command generation and completion recording
"""

from bbp_playbook.engine.service import PlaybookEngine

__all__ = ["PlaybookEngine"]
