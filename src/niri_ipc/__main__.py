"""Entry point for `python -m niri_ipc`."""

from .cli import main

if __name__ == "__main__":
    main()
