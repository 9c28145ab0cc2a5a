"""Module entry point: python -m parcel_demarcate ..."""

from __future__ import annotations

from parcel_demarcate.cli import main


if __name__ == "__main__":
    raise SystemExit(main())
