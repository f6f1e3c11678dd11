"""Allow running as python -m library_dll."""

from .cli import main

if __name__ == "__main__":
    main()
