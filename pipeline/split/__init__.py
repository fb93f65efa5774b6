from pipeline.split.columns import ColumnStats, analyze_columns
from pipeline.split.detection import SplitDetection, detect_split, to_grayscale
from pipeline.split.features import extract_features
from pipeline.split.model import predict_with_model, train_model
from pipeline.split.calibration import SplitCalibrator

__all__ = [
    "ColumnStats",
    "analyze_columns",
    "SplitDetection",
    "detect_split",
    "to_grayscale",
    "extract_features",
    "predict_with_model",
    "train_model",
    "SplitCalibrator",
]
