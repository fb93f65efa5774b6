from typing import Optional

from pipeline.schemas import StepName

STEP_DEFINITIONS = [
    {'name': 'split_check', 'class': 'pipeline.steps.split_check.SplitCheckStep'},
    {'name': 'ocr', 'class': 'pipeline.steps.page_jobs.OcrStep'},
    {'name': 'translate', 'class': 'pipeline.steps.page_jobs.TranslateStep'},
    {'name': 'summarize', 'class': 'pipeline.steps.summarize.SummarizeStep'},
    {'name': 'edition', 'class': 'pipeline.steps.edition.EditionStep'},
]

STEP_NAMES = [s['name'] for s in STEP_DEFINITIONS]


def get_step_class(step_name: str):
    for step_def in STEP_DEFINITIONS:
        if step_def['name'] == step_name:
            module_path, class_name = step_def['class'].rsplit('.', 1)
            module = __import__(module_path, fromlist=[class_name])
            return getattr(module, class_name)

    raise ValueError(f"Unknown step: {step_name}")


def get_step_instance(services, step_name: str):
    return get_step_class(step_name)(services)


def next_step(step_name: str) -> Optional[StepName]:
    idx = STEP_NAMES.index(step_name)
    if idx + 1 < len(STEP_NAMES):
        return StepName(STEP_NAMES[idx + 1])
    return None


def previous_steps(step_name: str):
    return [StepName(name) for name in STEP_NAMES[:STEP_NAMES.index(step_name)]]


def get_all_step_metadata():
    """Metadata from all step classes (for CLI listings)."""
    steps = []
    for step_def in STEP_DEFINITIONS:
        step_class = get_step_class(step_def['name'])
        steps.append({
            'name': step_def['name'],
            'icon': getattr(step_class, 'icon', '📦'),
            'inline': getattr(step_class, 'inline', True),
            'description': getattr(step_class, 'description', ''),
        })
    return steps
