"""Object store client."""
