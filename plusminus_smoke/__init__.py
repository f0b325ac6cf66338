"""Browser smoke harness for the PlusMinus arithmetic-practice page."""

__version__ = "0.1.0"
