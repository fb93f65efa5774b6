"""
Small linear model mapping centre-band features to a split position.

Trained on positions proposed by a vision model so later pages can be split
without another model call. Predictions are clamped to the 40-60% band.
"""

import random
from typing import Any, Dict, List, Optional

import numpy as np

from infra.errors import ValidationError
from infra.storage.documents import now_iso

MIN_EXAMPLES = 10
LEARNING_RATE = 0.0001
EPOCHS = 500
GRADIENT_CLIP = 10.0
VALIDATION_SHARE = 0.2
MIN_POSITION = 400
MAX_POSITION = 600

WEIGHT_NAMES = [
    'center_darkest_idx',
    'center_brightest_idx',
    'edge_center_diff',
    'inverted_gutter_offset',
    'aspect_ratio_offset',
]


def feature_vector(features: Dict[str, Any]) -> np.ndarray:
    return np.array([
        features['center_darkest_idx'] - 50,
        features['center_brightest_idx'] - 50,
        features['edge_center_diff'] / 50,
        1.0 if features['has_inverted_gutter'] else 0.0,
        features['aspect_ratio'] - 1.5,
    ], dtype=np.float64)


def raw_prediction(weights: Dict[str, float], features: Dict[str, Any]) -> float:
    w = np.array([weights[name] for name in WEIGHT_NAMES])
    return float(weights['bias'] + w @ feature_vector(features))


def predict_with_model(weights: Dict[str, float], features: Dict[str, Any]) -> int:
    return int(round(min(MAX_POSITION, max(MIN_POSITION, raw_prediction(weights, features)))))


def _mse(bias: float, w: np.ndarray, x: np.ndarray, y: np.ndarray) -> float:
    if len(y) == 0:
        return 0.0
    return float(np.mean((bias + x @ w - y) ** 2))


def train_model(examples: List[Dict[str, Any]], epochs: int = EPOCHS,
                learning_rate: float = LEARNING_RATE, seed: Optional[int] = None) -> Dict[str, Any]:
    """Fit by batch gradient descent; examples carry `features` and `target_position`."""
    if len(examples) < MIN_EXAMPLES:
        raise ValidationError(
            f"Need at least {MIN_EXAMPLES} training examples, have {len(examples)}",
            examples=len(examples),
        )

    shuffled = list(examples)
    random.Random(seed).shuffle(shuffled)
    split_at = int(len(shuffled) * (1 - VALIDATION_SHARE))
    train, validation = shuffled[:split_at], shuffled[split_at:]

    x = np.stack([feature_vector(e['features']) for e in train])
    y = np.array([e['target_position'] for e in train], dtype=np.float64)

    bias = float(np.median(y))
    w = np.zeros(len(WEIGHT_NAMES))

    for _ in range(epochs):
        error = bias + x @ w - y
        grad_w = np.clip(x.T @ error / len(y), -GRADIENT_CLIP, GRADIENT_CLIP)
        grad_b = float(np.clip(error.mean(), -GRADIENT_CLIP, GRADIENT_CLIP))
        w -= learning_rate * grad_w
        bias -= learning_rate * grad_b

    if validation:
        vx = np.stack([feature_vector(e['features']) for e in validation])
        vy = np.array([e['target_position'] for e in validation], dtype=np.float64)
        validation_mse = _mse(bias, w, vx, vy)
    else:
        validation_mse = _mse(bias, w, x, y)

    weights = {'bias': bias}
    weights.update({name: float(value) for name, value in zip(WEIGHT_NAMES, w)})

    return {
        'weights': weights,
        'trained_at': now_iso(),
        'training_size': len(train),
        'validation_size': len(validation),
        'validation_mse': validation_mse,
    }
