"""Module entrypoint for `python -m freightdesk`."""

from freightdesk.cli import main


if __name__ == "__main__":
    raise SystemExit(main())
