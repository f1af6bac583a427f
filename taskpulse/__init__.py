"""taskpulse — personal task tracker with a timer-driven task lifecycle."""

__version__ = "0.1.0"
