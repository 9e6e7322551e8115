"""Module entrypoint for `python -m maptest`."""

from __future__ import annotations

from maptest.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
