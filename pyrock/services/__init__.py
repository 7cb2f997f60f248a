"""Browser session services."""
