"""Infrastructure layer: database access and logging."""
