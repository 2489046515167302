"""Exception hierarchy."""


class FortressVoxError(Exception):
    """Base class for all errors raised by the package."""


class SourceError(FortressVoxError):
    """The game source could not answer (connection lost, unreadable snapshot)."""


class PrefabConfigError(FortressVoxError):
    """The prefab configuration is malformed or references a missing model."""


class ModelFormatError(FortressVoxError, ValueError):
    """A voxel model file could not be decoded."""
