"""Clinic Registry: clinics, dentists and their affiliations."""

__version__ = "0.1.0"
