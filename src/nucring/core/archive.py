"""Region archive — one zipped zarr group per (image basename, region kind).

Layout of ``<basename>_Nuclei.zip`` / ``<basename>_Cyto.zip``::

    .zattrs           source, kind, image_shape, pixel_size_um, ordinals, format version
    regions/<n>/      uint8 mask cropped to the region bbox (attrs: bbox)
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import numpy as np
import zarr
from numcodecs import Blosc

from nucring.core.exceptions import IOFailure
from nucring.core.models import Region, RegionKind, RegionSet

logger = logging.getLogger(__name__)

ARCHIVE_FORMAT_VERSION = 1
MASK_COMPRESSOR = Blosc(cname="lz4", clevel=5, shuffle=Blosc.BITSHUFFLE)

_KIND_SUFFIX = {
    RegionKind.NUCLEUS: "Nuclei",
    RegionKind.CYTOPLASM: "Cyto",
}


def archive_name(source: str, kind: RegionKind) -> str:
    """File name of the archive holding ``kind`` regions of ``source``."""
    return f"{source}_{_KIND_SUFFIX[RegionKind(kind)]}.zip"


def write_region_set(path: Path, region_set: RegionSet) -> None:
    """Write a region set to a zip archive.

    The archive is written next to ``path`` and then moved into place, so
    readers never observe a partially written file.

    Raises:
        IOFailure: If the archive cannot be written.
    """
    path = Path(path)
    tmp_path = path.with_name(path.name + ".tmp")
    try:
        store = zarr.ZipStore(str(tmp_path), mode="w")
        try:
            root = zarr.group(store=store)
            root.attrs.update({
                "format_version": ARCHIVE_FORMAT_VERSION,
                "source": region_set.source,
                "kind": region_set.kind.value,
                "image_shape": list(region_set.image_shape),
                "pixel_size_um": region_set.pixel_size_um,
                "ordinals": region_set.ordinals,
            })
            regions = root.require_group("regions")
            for region in region_set:
                # zarr cannot store zero-length chunks, so empty masks keep shape (1, 1)
                data = region.mask.astype(np.uint8)
                if data.size == 0:
                    data = np.zeros((1, 1), dtype=np.uint8)
                arr = regions.array(
                    str(region.ordinal),
                    data=data,
                    chunks=data.shape,
                    compressor=MASK_COMPRESSOR,
                )
                arr.attrs["bbox"] = list(region.bbox)
        finally:
            store.close()
        os.replace(tmp_path, path)
    except OSError as exc:
        tmp_path.unlink(missing_ok=True)
        raise IOFailure(str(path), str(exc)) from exc


def read_region_set(path: Path) -> RegionSet:
    """Read a region set written by :func:`write_region_set`.

    Raises:
        IOFailure: If the archive is missing, unreadable, or malformed.
    """
    path = Path(path)
    if not path.is_file():
        raise IOFailure(str(path), "archive not found")
    try:
        store = zarr.ZipStore(str(path), mode="r")
    except Exception as exc:
        raise IOFailure(str(path), f"unreadable archive: {exc}") from exc

    try:
        root = zarr.open_group(store=store, mode="r")
        attrs = dict(root.attrs)
        source = attrs["source"]
        kind = RegionKind(attrs["kind"])
        image_shape = tuple(attrs["image_shape"])
        region_set = RegionSet(
            source, kind, image_shape, pixel_size_um=attrs.get("pixel_size_um"),
        )
        for ordinal in attrs["ordinals"]:
            arr = root[f"regions/{ordinal}"]
            bbox = tuple(int(v) for v in arr.attrs["bbox"])
            height, width = bbox[2] - bbox[0], bbox[3] - bbox[1]
            mask = np.asarray(arr[:], dtype=bool)[:height, :width]
            region_set.add(Region(int(ordinal), kind, source, bbox, mask, image_shape))
    except (KeyError, ValueError, RuntimeError) as exc:
        raise IOFailure(str(path), f"malformed archive: {exc}") from exc
    finally:
        store.close()

    return region_set


class RegionArchive:
    """Directory of region archives keyed by image basename and region kind."""

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)

    def path_for(self, source: str, kind: RegionKind) -> Path:
        return self.directory / archive_name(source, kind)

    def exists(self, source: str, kind: RegionKind) -> bool:
        return self.path_for(source, kind).is_file()

    def write(self, region_set: RegionSet) -> Path:
        """Persist a region set, replacing any previous archive for its key."""
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.path_for(region_set.source, region_set.kind)
        write_region_set(path, region_set)
        logger.debug("Wrote %d %s regions to %s", len(region_set), region_set.kind.value, path)
        return path

    def read(self, source: str, kind: RegionKind) -> RegionSet:
        region_set = read_region_set(self.path_for(source, kind))
        if region_set.source != source or region_set.kind is not RegionKind(kind):
            raise IOFailure(
                str(self.path_for(source, kind)),
                f"archive holds {region_set.kind.value} regions of {region_set.source!r}",
            )
        return region_set
