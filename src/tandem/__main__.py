"""Module entrypoint for `python -m tandem`."""

from __future__ import annotations

from tandem.cli import run

if __name__ == "__main__":
    run()
