"""Main entry point for the schoolloan package."""

from schoolloan.cli import app


def main():
    """Run the command-line interface."""
    app()


if __name__ == "__main__":
    main()
