from typing import Any, Dict

import numpy as np
from PIL import Image

from pipeline.split.columns import analyze_columns
from pipeline.split.detection import to_grayscale

ANALYSIS_WIDTH = 500
CENTER_START = 0.40
CENTER_END = 0.60
EDGE_WIDTH = 0.05
INVERTED_GUTTER_DELTA = 30


def extract_features(img: Image.Image, analysis_width: int = ANALYSIS_WIDTH) -> Dict[str, Any]:
    """
    Brightness features of the centre band for the linear split model.

    Indices are relative to the start of the 40-60% band; edge_center_diff is
    positive when the centre is brighter than the outer edges (a bright,
    inverted gutter rather than a shadow).
    """
    gray = to_grayscale(img, max_width=analysis_width)
    height, width = gray.shape
    columns = analyze_columns(gray)

    start = int(width * CENTER_START)
    end = max(start + 1, int(width * CENTER_END))
    center = columns.p10[start:end]

    edge = max(1, int(width * EDGE_WIDTH))
    left_edge = float(columns.p10[:edge].mean())
    right_edge = float(columns.p10[-edge:].mean())
    edge_center_diff = float(center[len(center) // 2]) - (left_edge + right_edge) / 2

    return {
        'width': width,
        'height': height,
        'aspect_ratio': width / height,
        'center_darkest_p10': float(center.min()),
        'center_darkest_idx': int(np.argmin(center)),
        'center_brightest_p10': float(center.max()),
        'center_brightest_idx': int(np.argmax(center)),
        'center_avg_p10': float(center.mean()),
        'center_p10_variance': float(center.var()),
        'left_edge_p10': left_edge,
        'right_edge_p10': right_edge,
        'edge_center_diff': edge_center_diff,
        'has_inverted_gutter': edge_center_diff > INVERTED_GUTTER_DELTA,
    }
