"""In-process service counters, exported values and runtime options."""

__version__ = "0.1.0"
__all__ = ["options", "service_data"]