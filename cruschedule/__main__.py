"""
Package entry point.

Allows running the application via:

    python -m cruschedule

This simply forwards execution to cruschedule.cli.main().
"""

from cruschedule.cli import main

if __name__ == "__main__":
    main()
