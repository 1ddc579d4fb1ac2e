"""Walkie-talkie relay backend."""
