"""Configuration, logging and the text processing pipeline."""
