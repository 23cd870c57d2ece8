"""mcpsovereign - local-first store SDK for the mcpSovereign marketplace."""

__version__ = "0.1.0"
