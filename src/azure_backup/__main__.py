"""Allow ``python -m azure_backup``."""

from .cli import cli

if __name__ == '__main__':
    cli()
