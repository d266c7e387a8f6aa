"""HTTP adapter for the assessment engine."""
