"""HTTP boundary for the workforce engine."""
