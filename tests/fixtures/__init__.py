"""Shared pytest fixture modules."""
