"""pipeshell: an interactive command interpreter with pipelines and history."""

__version__ = "0.1.0"
