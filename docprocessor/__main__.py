"""Run the CLI with ``python -m docprocessor``."""

from docprocessor.cli import main

if __name__ == '__main__':
    main()
