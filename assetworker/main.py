import signal
from types import FrameType

from assetworker.config.settings import Settings
from assetworker.database.connection import close_pool, init_pool
from assetworker.database.repositories.asset_repository import AssetRepository
from assetworker.database.repositories.document_repository import DocumentRepository
from assetworker.database.repositories.job_repository import JobRepository
from assetworker.logging.logger import Log
from assetworker.pipeline.analyze import AnalyzeDocumentHandler
from assetworker.pipeline.asset_pipeline import AssetPipeline
from assetworker.pipeline.handlers import JobHandler, build_registry
from assetworker.producers.factory import ProducerFactory
from assetworker.storage.factory import ContentStoreFactory
from assetworker.worker.job_runner import JobRunner
from assetworker.worker.worker import Worker


def build_handlers(settings: Settings, job_repo: JobRepository) -> dict[str, JobHandler]:
    doc_repo = DocumentRepository()
    content_store = ContentStoreFactory.create(settings)
    producers = ProducerFactory.create_all(settings)
    return build_registry(
        [
            AnalyzeDocumentHandler(doc_repo, job_repo, producers),
            AssetPipeline(doc_repo, AssetRepository(), content_store, producers),
        ]
    )


def _interrupt(signum: int, frame: FrameType | None) -> None:
    raise KeyboardInterrupt


def main() -> None:
    """Entry point: initialize pool -> build dependencies -> start worker loop."""
    settings = Settings()
    Log.configure(settings.log_level)
    signal.signal(signal.SIGTERM, _interrupt)
    init_pool(settings)

    try:
        job_repo = JobRepository(settings.max_job_attempts)
        job_runner = JobRunner(build_handlers(settings, job_repo), job_repo, settings)
        worker = Worker(job_repo, job_runner, settings)
        worker.run()
    finally:
        close_pool()


if __name__ == "__main__":
    main()
