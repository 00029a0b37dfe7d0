from __future__ import annotations

import sys
from pathlib import Path


def _ensure_repo_root_on_path() -> None:
    """Put the repository root (parent of this package) on ``sys.path``.

    Running ``python dont_pick_it/__main__.py`` directly does not make the
    package importable; inserting its parent directory fixes that.
    """
    pkg_dir = Path(__file__).resolve().parent
    repo_root_str = str(pkg_dir.parent)
    if repo_root_str not in sys.path:
        sys.path.insert(0, repo_root_str)


try:
    # python -m dont_pick_it
    from .app import run  # type: ignore[attr-defined]
except ImportError:
    # Executed as a plain script.
    _ensure_repo_root_on_path()
    from dont_pick_it.app import run  # type: ignore[attr-defined]


def main() -> int:
    """Entry point for playing Don't Pick It! from the command line."""
    return run()


if __name__ == "__main__":
    raise SystemExit(main())
