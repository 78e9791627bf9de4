"""nucring segment — nuclear segmentation and cytoplasmic ring derivation."""

from nucring.segment.annulus import AnnulusGenerator, thickness_to_pixels
from nucring.segment.base_segmenter import BaseSegmenter, SegmentationParams
from nucring.segment.label_processor import LabelProcessor
from nucring.segment.nuclear import NuclearSegmenter

__all__ = [
    "AnnulusGenerator",
    "BaseSegmenter",
    "LabelProcessor",
    "NuclearSegmenter",
    "SegmentationParams",
    "thickness_to_pixels",
]
