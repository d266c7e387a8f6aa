"""Assessment lifecycle, scoring and activity analytics engine."""

__version__ = "1.0.0"
