"""oh-my-claude-money lifecycle hooks."""

__version__ = "1.0.0"
