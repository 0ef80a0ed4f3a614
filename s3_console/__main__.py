"""Module entry point for the s3-console command line."""
from .cli import app


def main() -> None:
    app()


if __name__ == "__main__":
    main()
