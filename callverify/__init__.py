"""Call verification toolkit for contact-center end-to-end tests."""

__version__ = "0.1.0"
