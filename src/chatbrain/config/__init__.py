"""Configuration: engine constants and environment-driven settings."""

from chatbrain.config.settings import Settings

__all__ = ["Settings"]
