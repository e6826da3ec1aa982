"""Telegram bot that distorts user-submitted media one job at a time."""
