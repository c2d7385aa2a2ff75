"""Todoist → Google Tasks: синхронизация задач по вебхукам."""

__version__ = "0.1.0"
