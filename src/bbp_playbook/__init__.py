"""BBP Playbook.

A declarative task/readiness engine for checklist-style procedures:
- tasks and modes loaded from a YAML playbook
- `{placeholder}` substitution against a parameter context
- readiness gating on previously recorded artifacts, persisted per scope
"""

__version__ = "0.1.0"

from bbp_playbook.engine.config import PlaybookSettings

__all__ = ["__version__", "PlaybookSettings"]
