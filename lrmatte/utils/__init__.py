"""Utility helpers for lrmatte."""

from .batch import BatchItem, collect_batch_items, write_summary
from .img import load_image, load_trimap, save_gray, values_to_uint8

__all__ = [
    "BatchItem",
    "collect_batch_items",
    "write_summary",
    "load_image",
    "load_trimap",
    "save_gray",
    "values_to_uint8",
]
