"""CLI entry point for the lottery ticket purchase app.

All command logic lives in the cli subpackage.
"""

from lottery_tools.apps.ticket_purchase.cli import app

__all__ = ["app", "main"]


def main() -> None:
    """Run the lottery ticket purchase CLI application."""
    app()


if __name__ == "__main__":
    main()
