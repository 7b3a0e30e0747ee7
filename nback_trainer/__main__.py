from __future__ import annotations

from .simulate import run


def main() -> int:
    """Entry point for running a simulated session from the command line."""
    return run()


if __name__ == "__main__":
    raise SystemExit(main())
