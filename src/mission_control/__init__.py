"""Mission Control: operator dashboard API for a single OpenClaw agent runtime."""

__version__ = "0.1.0"
