"""
Supermarket Sales Warehouse
Configuration Module
"""
from .settings import Settings, PipelineSettings, StagingSettings, get_settings

__all__ = ["Settings", "PipelineSettings", "StagingSettings", "get_settings"]
