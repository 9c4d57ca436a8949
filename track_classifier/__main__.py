"""Module entry point: python -m track_classifier ..."""

from .cli import main


if __name__ == "__main__":
    raise SystemExit(main())
