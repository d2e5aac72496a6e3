"""
Module entry point for: python -m faqsite

Allows running the site builder directly as a module:
    python -m faqsite check <content_dir> [options]
    python -m faqsite build <content_dir> [options]
    python -m faqsite serve [options]
"""

from .cli import cli


def main():
    cli()


if __name__ == "__main__":
    main()
