"""
Gutter heuristic for two-page spreads.

Scores every column in the middle 30% of the image and picks the one that
looks most like a binding: dark, long unbroken dark runs, few dark/light
transitions and a consistent darkest quartile. A narrow window around the
winner is then checked for text-like texture before a confidence is given.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import numpy as np
from PIL import Image

from pipeline.split.columns import ColumnStats, analyze_columns

SEARCH_START = 0.35
SEARCH_END = 0.65
TEXT_WINDOW = 3
PORTRAIT_CUTOFF = 0.9


@dataclass
class SplitDetection:
    is_two_page_spread: bool
    split_position: int            # 0-1000
    confidence: str                # high | medium | low
    score: float
    aspect_ratio: float
    has_text_at_split: bool = False
    text_warning: Optional[str] = None
    metrics: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'isTwoPageSpread': self.is_two_page_spread,
            'splitPosition': self.split_position,
            'confidence': self.confidence,
            'score': round(self.score, 2),
            'aspectRatio': round(self.aspect_ratio, 3),
            'hasTextAtSplit': self.has_text_at_split,
            'textWarning': self.text_warning,
            'metrics': self.metrics,
        }


def to_grayscale(img: Image.Image, max_width: int = 1000) -> np.ndarray:
    """Downsample to at most max_width columns and return an HxW float array."""
    gray = img.convert('L')
    if gray.width > max_width:
        height = max(1, round(gray.height * max_width / gray.width))
        gray = gray.resize((max_width, height))
    return np.asarray(gray, dtype=np.float64)


def gutter_scores(columns: ColumnStats) -> np.ndarray:
    p10_score = (255 - columns.p10) / 2.55
    dark_run_score = columns.max_dark_run
    transition_score = np.maximum(0, 100 - columns.transitions / 5)
    consistency_score = np.maximum(0, 50 - columns.dark_std_dev)
    return (
        0.30 * p10_score
        + 0.35 * dark_run_score
        + 0.20 * transition_score
        + 0.15 * consistency_score
    )


def find_gutter(columns: ColumnStats):
    """Best column in [0.35W, 0.65W) and its score."""
    width = len(columns)
    start = int(width * SEARCH_START)
    end = int(width * SEARCH_END)
    if end <= start:
        return width // 2, 0.0

    scores = gutter_scores(columns)[start:end]
    best = int(np.argmax(scores))
    return start + best, float(scores[best])


def check_text(columns: ColumnStats, position: int, window: int = TEXT_WINDOW):
    """Two of three texture signals around the split mean it runs through text."""
    lo = max(0, position - window)
    hi = min(len(columns), position + window + 1)

    avg_transitions = float(columns.transitions[lo:hi].mean())
    avg_dark_run = float(columns.max_dark_run[lo:hi].mean())
    avg_dark_std = float(columns.dark_std_dev[lo:hi].mean())
    col_transitions = float(columns.transitions[position])
    col_dark_run = float(columns.max_dark_run[position])

    reasons = []
    if col_transitions > 30 and avg_transitions > 40:
        reasons.append(f"high transitions ({col_transitions:.0f})")
    if col_dark_run < 40 and avg_dark_run < 50:
        reasons.append(f"short dark runs ({col_dark_run:.0f}%)")
    if avg_dark_std > 30:
        reasons.append(f"high variance ({avg_dark_std:.0f})")

    metrics = {
        'windowAvgTransitions': round(avg_transitions),
        'windowAvgDarkRun': round(avg_dark_run),
        'windowAvgDarkStdDev': round(avg_dark_std),
    }
    has_text = len(reasons) >= 2
    warning = f"Text at split: {', '.join(reasons)}" if has_text else None
    return has_text, warning, metrics


def grade_confidence(aspect_ratio: float, score: float, has_text: bool) -> str:
    if aspect_ratio > 1.1 and score > 50 and not has_text:
        return 'high'
    if aspect_ratio <= 1.0 or score < 30 or has_text:
        return 'low'
    return 'medium'


def detect_split(gray: np.ndarray) -> SplitDetection:
    height, width = gray.shape
    aspect_ratio = width / height

    if aspect_ratio < PORTRAIT_CUTOFF:
        # Portrait: a single page, nothing to split
        return SplitDetection(
            is_two_page_spread=False,
            split_position=500,
            confidence='low',
            score=0.0,
            aspect_ratio=aspect_ratio,
        )

    columns = analyze_columns(gray)
    position, score = find_gutter(columns)
    has_text, warning, window_metrics = check_text(columns, position)

    return SplitDetection(
        is_two_page_spread=aspect_ratio > 1.0,
        split_position=round(position / width * 1000),
        confidence=grade_confidence(aspect_ratio, score, has_text),
        score=score,
        aspect_ratio=aspect_ratio,
        has_text_at_split=has_text,
        text_warning=warning,
        metrics={
            'gutterScore': round(score, 2),
            'maxDarkRunAtSplit': round(float(columns.max_dark_run[position]), 1),
            'transitionsAtSplit': int(columns.transitions[position]),
            **window_metrics,
        },
    )
