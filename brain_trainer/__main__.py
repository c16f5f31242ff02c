from __future__ import annotations

from .app import run


def main() -> int:
    """Entry point: open the game menu."""
    return run()


if __name__ == "__main__":
    raise SystemExit(main())
