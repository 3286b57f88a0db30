"""Pydantic records read and written by the leave calculators."""
