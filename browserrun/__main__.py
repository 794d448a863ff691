"""Allow ``python -m browserrun``; child processes are started this way."""

from .cli import main

if __name__ == "__main__":
    main()
