"""Module entrypoint for ``python -m shaur``.

All argument parsing and runtime setup happen in ``shaur.cli``.
"""

from .cli import main


if __name__ == "__main__":
    main()
