"""Scan pipeline and host request handling."""

from .dispatcher import RequestDispatcher
from .scanner import ScanPipeline

__all__ = ["RequestDispatcher", "ScanPipeline"]
