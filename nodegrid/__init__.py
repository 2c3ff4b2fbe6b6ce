"""Terminal dashboard showing cluster nodes as a grid of boxes filled with their pods."""

__version__ = "0.1.0"
