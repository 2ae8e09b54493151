"""Wanderplan - AI-assisted trip planning wizard."""
