"""Public-interface policy engine with a compatibility-diff companion."""

__version__ = "0.1.0"
