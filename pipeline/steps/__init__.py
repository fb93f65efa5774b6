from pipeline.steps.base import BaseStep
from pipeline.steps.split_check import SplitCheckStep
from pipeline.steps.page_jobs import PageJobStep, OcrStep, TranslateStep
from pipeline.steps.summarize import SummarizeStep
from pipeline.steps.edition import EditionStep

__all__ = [
    "BaseStep",
    "SplitCheckStep",
    "PageJobStep",
    "OcrStep",
    "TranslateStep",
    "SummarizeStep",
    "EditionStep",
]
