"""Main CLI entry point for screenforge."""  # pragma: no cover

from screenforge.cli.app import app  # pragma: no cover

# Register commands
from screenforge.cli.commands import (  # noqa: F401  # pragma: no cover
    generate,
    screen,
)

if __name__ == "__main__":  # pragma: no cover
    app()
