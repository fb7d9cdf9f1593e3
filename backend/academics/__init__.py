"""Academic records engine: referential integrity, submissions, progress and metrics."""
