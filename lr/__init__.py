"""Release registration and artifact upload client."""

__version__ = "0.4.0"
