"""Event-driven HTTP reverse proxy with round-robin load balancing."""

__version__ = "0.1.0"