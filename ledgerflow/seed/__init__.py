"""Demo data for the sample provider."""
