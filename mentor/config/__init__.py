"""Configuration: environment-backed settings and logging setup."""
