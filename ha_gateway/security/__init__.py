"""Security helpers: input validation and secrets loading."""
