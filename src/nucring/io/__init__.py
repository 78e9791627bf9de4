"""nucring IO — TIFF rasters, channel-file discovery, config YAML."""

from nucring.io.scanner import ChannelScanner, ImageGroup
from nucring.io.serialization import config_from_yaml, config_to_yaml
from nucring.io.tiff import load_raster, read_tiff, read_tiff_metadata, split_channels

__all__ = [
    "ChannelScanner",
    "ImageGroup",
    "config_from_yaml",
    "config_to_yaml",
    "load_raster",
    "read_tiff",
    "read_tiff_metadata",
    "split_channels",
]
