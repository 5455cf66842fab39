"""Core utilities: exceptions, logging, validation and paths."""
