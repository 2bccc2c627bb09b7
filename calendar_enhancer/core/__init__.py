"""Configuration and shared infrastructure for calendar_enhancer."""
