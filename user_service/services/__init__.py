"""Service layer: database operations wrapped in application spans."""
