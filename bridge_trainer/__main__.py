from __future__ import annotations

import sys
from pathlib import Path


def _ensure_repo_root_on_path() -> None:
    """Put the repository root on ``sys.path`` when run as a plain script."""
    repo_root_str = str(Path(__file__).resolve().parent.parent)
    if repo_root_str not in sys.path:
        sys.path.insert(0, repo_root_str)


try:
    # python -m bridge_trainer
    from .app import run
except ImportError:
    # python bridge_trainer/__main__.py
    _ensure_repo_root_on_path()
    from bridge_trainer.app import run


def main() -> int:
    """Start the bridge trainer window."""
    return run()


if __name__ == "__main__":
    raise SystemExit(main())
