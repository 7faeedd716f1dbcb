"""Core configuration and utilities for DashCalc."""

from dashcalc.core.config import settings
from dashcalc.core.logging import setup_logging

__all__ = ["settings", "setup_logging"]
