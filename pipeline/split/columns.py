"""
Per-column brightness statistics over a grayscale raster.

Everything downstream (gutter search, text check, model features) works on
these arrays rather than on pixels, so they are computed once per image.
"""

from dataclasses import dataclass

import numpy as np

DARK_THRESHOLD = 180


@dataclass
class ColumnStats:
    """One entry per column; every field is a float array of length W."""
    mean: np.ndarray
    min: np.ndarray
    p10: np.ndarray
    p25: np.ndarray
    median: np.ndarray
    max_dark_run: np.ndarray   # % of image height
    transitions: np.ndarray
    dark_std_dev: np.ndarray

    def __len__(self):
        return len(self.mean)


def longest_run(mask: np.ndarray) -> int:
    """Length of the longest run of True values in a 1-D boolean array."""
    if not mask.any():
        return 0
    padded = np.concatenate(([0], mask.astype(np.int8), [0]))
    edges = np.diff(padded)
    starts = np.flatnonzero(edges == 1)
    ends = np.flatnonzero(edges == -1)
    return int((ends - starts).max())


def analyze_columns(gray: np.ndarray, dark_threshold: int = DARK_THRESHOLD) -> ColumnStats:
    gray = np.asarray(gray, dtype=np.float64)
    height, width = gray.shape

    ordered = np.sort(gray, axis=0)
    dark = gray < dark_threshold

    runs = np.array([longest_run(dark[:, x]) for x in range(width)], dtype=np.float64)
    transitions = np.count_nonzero(dark[1:, :] != dark[:-1, :], axis=0).astype(np.float64)

    quartile = int(height * 0.25)
    if quartile > 0:
        dark_std_dev = ordered[:quartile, :].std(axis=0)
    else:
        dark_std_dev = np.zeros(width)

    return ColumnStats(
        mean=gray.mean(axis=0),
        min=ordered[0, :],
        p10=ordered[int(height * 0.1), :],
        p25=ordered[int(height * 0.25), :],
        median=ordered[int(height * 0.5), :],
        max_dark_run=runs / height * 100,
        transitions=transitions,
        dark_std_dev=dark_std_dev,
    )
