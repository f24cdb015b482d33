"""Python client for the scheduler API and its in-memory meeting state."""
