"""Utility modules for ATABAI."""

from atabai.utils.performance import StageTimer

__all__ = ["StageTimer"]
