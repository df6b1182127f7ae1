"""Core query engine: exceptions, settings and pagination."""
