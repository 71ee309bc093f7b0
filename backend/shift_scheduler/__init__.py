"""Recurring shift generation engine with HTTP, console and cron triggers."""

from .constants import APPLICATION_VERSION

__version__ = APPLICATION_VERSION
