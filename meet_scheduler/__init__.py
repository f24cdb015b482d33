"""Create instant and scheduled Google Meet links through Google Calendar."""

__version__ = "0.1.0"
