"""Main entry point for the circulation package."""

from circulation.cli import app


def main():
    """Run the command-line interface."""
    app()


if __name__ == "__main__":
    main()
