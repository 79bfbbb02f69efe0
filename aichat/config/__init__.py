"""Configuration module for the aichat service."""

from aichat.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
