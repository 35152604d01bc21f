# statlab/config/__init__.py
"""
Configuration management for statlab.

This module provides centralized configuration handling with:
- Environment variable support (STATLAB_* prefix)
- Default values for all policy parameters
- Easy override for testing

Usage:
    from statlab.config import settings

    seed = settings.default_seed
    threshold = settings.vif_threshold

    # Override for testing
    from statlab.config import StatlabSettings
    test_settings = StatlabSettings(artifacts_dir="/tmp/test")
"""

from statlab.config.settings import StatlabSettings, settings

__all__ = [
    "StatlabSettings",
    "settings",
]
