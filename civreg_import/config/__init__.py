"""Configuration: config/import.yml loading and built-in entity definitions."""
