"""Listing-page extraction: selector resolution, candidate extraction, filtering and content checks."""
