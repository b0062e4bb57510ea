"""Request data validation."""
