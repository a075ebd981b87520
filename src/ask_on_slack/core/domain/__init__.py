"""Domain layer: data model, roles, settings and errors."""
