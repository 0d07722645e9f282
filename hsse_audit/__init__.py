"""HSSE audit lifecycle engine: audits, checklist items and findings."""

__version__ = "0.1.0"
