"""Module entrypoint for running offshape as ``python -m offshape``."""

from __future__ import annotations

from offshape.cli import main


if __name__ == "__main__":
    main()
