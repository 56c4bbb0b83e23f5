"""Vakit-Push - Namaz vakti web-push bildirim servisi."""

__version__ = "0.1.0"
