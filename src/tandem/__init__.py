"""Session relay and approval arbitration for a terminal-driven coding agent."""

__version__ = "0.1.0"
