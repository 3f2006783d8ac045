"""Client for the Cove vault program."""

__version__ = "0.1.0"
