"""
Wiring for the job engine and pipeline.

CLI commands and the web app both call build_services() once and pass the
result around; tests inject a fake provider and image loader.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from infra.batch.images import PageImageLoader
from infra.batch.reconciler import BatchReconciler
from infra.batch.submission import BatchSubmitter
from infra.batch.sync import BatchSync
from infra.config import LibraryConfig, LibraryConfigManager
from infra.gemini.client import GeminiBatchClient
from infra.gemini.provider import BatchProvider
from infra.jobs.registry import JobRegistry
from infra.storage.library import Library


@dataclass
class Services:
    library: Library
    config: LibraryConfig
    provider: BatchProvider
    registry: JobRegistry
    submitter: BatchSubmitter
    reconciler: BatchReconciler
    sync: BatchSync
    image_loader: PageImageLoader
    orchestrator: Optional["PipelineOrchestrator"] = None

    def close(self):
        self.library.close()


def build_services(
    storage_root: Optional[Path] = None,
    provider: Optional[BatchProvider] = None,
    config: Optional[LibraryConfig] = None,
    image_loader: Optional[PageImageLoader] = None,
) -> Services:
    from pipeline.orchestrator import PipelineOrchestrator

    library = Library(storage_root)
    if config is None:
        config = LibraryConfigManager(library.storage_root).load()

    if provider is None:
        provider = GeminiBatchClient(
            api_key=config.resolve_api_key("gemini") or None,
            config=config.provider,
            logger=library.logger("gemini"),
        )

    if image_loader is None:
        image_loader = PageImageLoader(config.provider, logger=library.logger("images"))

    registry = JobRegistry(library.jobs, logger=library.logger("jobs"))
    submitter = BatchSubmitter(library, provider, registry, config=config, image_loader=image_loader)
    reconciler = BatchReconciler(library, provider, registry)
    sync = BatchSync(library, reconciler, submitter)

    services = Services(
        library=library,
        config=config,
        provider=provider,
        registry=registry,
        submitter=submitter,
        reconciler=reconciler,
        sync=sync,
        image_loader=image_loader,
    )
    services.orchestrator = PipelineOrchestrator(services)
    registry.on_job_finished = services.orchestrator.on_job_finished

    library.logger("services").debug(f"Services ready at {library.storage_root}")
    return services
