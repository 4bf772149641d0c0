"""Time-entry settlement and payroll engine."""

__version__ = "1.0.0"
