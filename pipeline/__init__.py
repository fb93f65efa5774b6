"""
Book pipeline: split_check -> ocr -> translate -> summarize -> edition.

Steps live in pipeline.steps and are looked up through pipeline.registry;
pipeline.orchestrator drives them against per-book state stored on the book
record. pipeline.split holds the gutter heuristic used by split_check and the
calibrated split model.
"""
