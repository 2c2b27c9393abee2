"""Configuration, logging, signing and polling utilities."""
