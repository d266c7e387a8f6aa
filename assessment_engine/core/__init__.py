"""Core configuration for the assessment engine."""
