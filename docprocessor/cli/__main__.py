"""
Allows the CLI to be executed with ``python -m docprocessor.cli``.
"""

from . import main

if __name__ == '__main__':
    main()
