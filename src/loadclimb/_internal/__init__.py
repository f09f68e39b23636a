"""Internal helpers: errors, configuration and logging."""
