"""Downloader for nnn course lessons delivered as HLS streams."""

__version__ = "1.0.0"
