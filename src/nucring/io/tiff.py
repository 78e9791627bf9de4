"""TIFF reading, pixel-size extraction, and channel splitting via tifffile."""

from __future__ import annotations

import logging
from pathlib import Path

import defusedxml.ElementTree as ET
import numpy as np
import tifffile

from nucring.core.exceptions import IOFailure
from nucring.core.models import Calibration, RasterImage

logger = logging.getLogger(__name__)

_MICRON_UNITS = ("micron", "um", "µm", "\\u00B5m")


def read_tiff(path: Path) -> np.ndarray:
    """Read a TIFF file into a numpy array.

    Raises:
        IOFailure: If the file is missing or cannot be decoded.
    """
    try:
        return tifffile.imread(str(path))
    except (OSError, ValueError, tifffile.TiffFileError) as exc:
        raise IOFailure(str(path), str(exc)) from exc


def read_tiff_metadata(path: Path) -> dict:
    """Extract metadata from a TIFF file without reading pixel data.

    Returns:
        Dict with keys: 'shape', 'dtype', 'axes', 'pixel_size_um', 'calibration'.
        pixel_size_um may be None if not found; calibration defaults to identity.
    """
    try:
        with tifffile.TiffFile(str(path)) as tif:
            series = tif.series[0]
            return {
                "shape": tuple(series.shape),
                "dtype": str(series.dtype),
                "axes": series.axes,
                "pixel_size_um": _extract_pixel_size(tif),
                "calibration": _extract_calibration(tif),
            }
    except (OSError, ValueError, IndexError, tifffile.TiffFileError) as exc:
        raise IOFailure(str(path), str(exc)) from exc


def _extract_pixel_size(tif: tifffile.TiffFile) -> float | None:
    """Try to extract pixel size in micrometers from TIFF metadata.

    Checks in order: OME-XML, resolution tags (with the ImageJ unit).
    """
    # 1. OME-XML
    if tif.ome_metadata:
        try:
            root = ET.fromstring(tif.ome_metadata)
            pixels = root.find(".//{*}Pixels")
            if pixels is not None and pixels.get("PhysicalSizeX") is not None:
                value = float(pixels.get("PhysicalSizeX"))
                unit = pixels.get("PhysicalSizeXUnit", "µm")
                if unit == "nm":
                    return value / 1000.0
                if unit in ("mm", "millimeter"):
                    return value * 1000.0
                return value  # assume µm
        except (ET.ParseError, ValueError) as exc:
            logger.debug("Ignoring unreadable OME-XML in %s: %s", tif.filename, exc)

    # 2. Resolution tags
    tags = tif.pages[0].tags
    if "XResolution" not in tags:
        return None
    x_res = tags["XResolution"].value
    if isinstance(x_res, tuple) and len(x_res) == 2:
        if x_res[1] == 0:
            return None
        pixels_per_unit = x_res[0] / x_res[1]
    else:
        pixels_per_unit = float(x_res)
    if pixels_per_unit <= 0:
        return None

    ij_unit = (tif.imagej_metadata or {}).get("unit")
    if ij_unit in _MICRON_UNITS:
        return 1.0 / pixels_per_unit

    res_unit = tags["ResolutionUnit"].value if "ResolutionUnit" in tags else 1
    # ResolutionUnit: 1=no unit, 2=inch, 3=centimeter
    if res_unit == 3:
        return 10000.0 / pixels_per_unit
    if res_unit == 2:
        return 25400.0 / pixels_per_unit
    return None


def _extract_calibration(tif: tifffile.TiffFile) -> Calibration:
    """ImageJ straight-line intensity calibration (``cf=0``, value = c0 + c1 * raw).

    Other calibration functions are not supported and read as identity.
    """
    meta = tif.imagej_metadata or {}
    if meta.get("cf") != 0 or "c1" not in meta:
        return Calibration()
    try:
        return Calibration(slope=float(meta["c1"]), offset=float(meta.get("c0", 0.0)))
    except (TypeError, ValueError):
        logger.debug("Ignoring unreadable ImageJ calibration in %s", tif.filename)
        return Calibration()


def load_raster(
    path: Path,
    source: str,
    channel: int,
    pixel_size_um: float | None = None,
) -> RasterImage:
    """Load a single-channel TIFF as a RasterImage.

    Args:
        path: TIFF file holding one channel.
        source: Basename identity of the source image.
        channel: Channel index (``C<n>``).
        pixel_size_um: Override; read from metadata when None (default 1.0).
            The intensity calibration always comes from ImageJ metadata.

    Raises:
        IOFailure: If the file cannot be read or is not 2D.
    """
    data = np.squeeze(read_tiff(path))
    if data.ndim != 2:
        raise IOFailure(str(path), f"expected a single-channel 2D image, got shape {data.shape}")
    meta = read_tiff_metadata(path)
    if pixel_size_um is None:
        pixel_size_um = meta["pixel_size_um"] or 1.0
    return RasterImage(
        data=data, source=source, channel=channel, pixel_size_um=pixel_size_um,
        calibration=meta["calibration"],
    )


def split_channels(
    path: Path,
    source: str,
    pixel_size_um: float | None = None,
) -> dict[int, RasterImage]:
    """Deinterleave a multi-channel TIFF into 1-based channel rasters.

    The channel axis is taken from the series axes ('C', then 'S', then a
    generic 'I'/'Q' stack axis).

    Raises:
        IOFailure: If the file cannot be read or has no channel axis.
    """
    meta = read_tiff_metadata(path)
    data = read_tiff(path)
    axes = meta["axes"]
    if pixel_size_um is None:
        pixel_size_um = meta["pixel_size_um"] or 1.0

    if data.ndim == 2:
        return {1: RasterImage(
            data=data, source=source, channel=1, pixel_size_um=pixel_size_um,
            calibration=meta["calibration"],
        )}
    if data.ndim != 3 or len(axes) != 3:
        raise IOFailure(str(path), f"unsupported image layout {axes} {data.shape}")

    for axis_code in ("C", "S", "I", "Q"):
        if axis_code in axes:
            stack = np.moveaxis(data, axes.index(axis_code), 0)
            break
    else:
        raise IOFailure(str(path), f"no channel axis in {axes}")

    return {
        i + 1: RasterImage(
            data=np.ascontiguousarray(plane), source=source, channel=i + 1,
            pixel_size_um=pixel_size_um, calibration=meta["calibration"],
        )
        for i, plane in enumerate(stack)
    }
