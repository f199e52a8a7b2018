"""
Configuration models and loader.
"""

from .settings import ManagerConfig, load_config

__all__ = ['ManagerConfig', 'load_config']
