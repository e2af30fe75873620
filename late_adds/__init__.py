"""Find late adds between successive appointment-schedule exports."""

__version__ = "0.1.0"
