"""Résumé-to-application pipeline: parse a CV, find jobs, rank them, apply by email."""

__version__ = "1.0.0"
