"""HTTP boundary for Beacon Analytics (Flask)."""
