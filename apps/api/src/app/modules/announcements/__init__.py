"""Announcements module - static school announcements."""

from app.modules.announcements.router import router

__all__ = ["router"]
