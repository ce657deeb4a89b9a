"""Shared fakes for gateway tests."""
