"""Replicates the configuration of an Azure Media Services account into another account."""

__version__ = "1.0.0"
