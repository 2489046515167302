"""
Export modules.

Supported formats:
- MagicaVoxel (.vox) - scene graph with layers and materials
"""

from .vox_exporter import VoxExporter, load_vox

__all__ = ["VoxExporter", "load_vox"]
