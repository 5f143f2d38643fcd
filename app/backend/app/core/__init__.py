"""Configuration, authentication and error primitives."""
