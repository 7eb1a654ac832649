"""Allow ``python -m fixity_spine``."""

from fixity_spine.cli.app import app

if __name__ == "__main__":
    app()
