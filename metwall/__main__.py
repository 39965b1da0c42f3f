"""Main entry point when executing metwall as a package.

This allows running the package using python -m metwall.
"""

from metwall.main import cli_entry_point

if __name__ == "__main__":
    cli_entry_point()
