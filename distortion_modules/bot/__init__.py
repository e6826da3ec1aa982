"""Telegram handlers for the distortion bot."""
