"""Record collection service with real-time change notifications."""

__version__ = "0.1.0"
