"""Configuration, logging, physical constants and shared types."""
