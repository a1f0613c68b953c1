"""Code Advisor - heuristic code suggestions and AI chat relay."""

__version__ = "0.3.0"
