"""scimuscle: exercise-to-muscle mapping resolution and training volume aggregation."""
