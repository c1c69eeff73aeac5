"""Prospect store and follow-up scheduling."""
