"""Shared test fixtures for nucring."""

from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest
import tifffile
from skimage.draw import disk

from nucring.core.config import AnalysisConfig


def two_nuclei(shape: tuple[int, int] = (100, 100), value: int = 200) -> np.ndarray:
    """Two bright disks of radius 10 at (30, 30) and (70, 70) on a dark field."""
    image = np.zeros(shape, dtype=np.uint16)
    for center in ((30, 30), (70, 70)):
        rr, cc = disk(center, 10, shape=shape)
        image[rr, cc] = value
    return image


def write_channel_files(
    directory: Path,
    basename: str,
    nuclear: np.ndarray,
    aux: dict[int, int],
) -> None:
    """Write C1-<basename>.tif plus one uniform C<n>- file per aux channel."""
    directory.mkdir(parents=True, exist_ok=True)
    tifffile.imwrite(str(directory / f"C1-{basename}.tif"), nuclear)
    for ch, value in aux.items():
        data = np.full(nuclear.shape, value, dtype=np.uint16)
        tifffile.imwrite(str(directory / f"C{ch}-{basename}.tif"), data)


@pytest.fixture
def nuclear_image() -> np.ndarray:
    return two_nuclei()


@pytest.fixture
def input_dir(tmp_path: Path) -> Path:
    """Input tree with one complete image: C1 nuclei, C2 = 100, C3 = 50."""
    d = tmp_path / "input"
    write_channel_files(d, "img", two_nuclei(), {2: 100, 3: 50})
    return d


@pytest.fixture
def config(input_dir: Path, tmp_path: Path) -> AnalysisConfig:
    """Settings tuned for the 100x100 synthetic images."""
    return AnalysisConfig(
        input_dir=input_dir,
        output_dir=tmp_path / "output",
        block_size=32,
        local_radius=10,
        min_area=100.0,
        max_area=1000.0,
        cytoplasm_thickness=2.0,
        pixel_size_um=1.0,
    )


@pytest.fixture
def make_channel_files():
    """Factory writing a channel-file set (see ``write_channel_files``)."""
    return write_channel_files


@pytest.fixture
def make_nuclei():
    """Factory for the two-disk nuclear image (see ``two_nuclei``)."""
    return two_nuclei
