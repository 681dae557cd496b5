"""Configuration, logging and currency helpers."""
