from pipeline.schemas import PipelineState, StepOutcome


class BaseStep:
    name: str = None
    icon: str = '📦'
    description: str = ''
    # Inline steps finish inside execute_step; job-backed steps hand off to a Job
    inline: bool = True

    def __init__(self, services):
        self.services = services
        self.library = services.library
        self.config = services.config

    @property
    def logger(self):
        return self.library.logger("pipeline")

    def run(self, book_id: str, state: PipelineState) -> StepOutcome:
        raise NotImplementedError(f"{self.__class__.__name__} must implement run()")
