"""Internal chat service."""
