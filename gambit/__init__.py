"""gambit - chess match orchestration for chat bots."""

__version__ = "0.1.0"
