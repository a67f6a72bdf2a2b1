"""hostpulse - lightweight host health dashboard."""

__version__ = "0.3.0"
