"""Console script entrypoint.

The CLI itself lives in `bbp_playbook.engine.main`.
"""

from __future__ import annotations

from bbp_playbook.engine.main import main

__all__ = ["main"]


if __name__ == "__main__":
    raise SystemExit(main())
