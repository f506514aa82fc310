"""Domain layer: schema entities and validation services."""
