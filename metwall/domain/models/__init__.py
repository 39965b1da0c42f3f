"""Domain models: value objects and the normalized artwork record."""
