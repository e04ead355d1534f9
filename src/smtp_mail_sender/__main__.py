"""Module entry point for `python -m smtp_mail_sender`."""

from .cli import main

if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
