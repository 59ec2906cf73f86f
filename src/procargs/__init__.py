"""procargs - shell-safe command line splitting, quoting and macro expansion."""

__version__ = "0.1.0"
