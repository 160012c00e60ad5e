"""Sharpline Odds API package."""
