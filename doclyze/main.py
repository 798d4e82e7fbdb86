from doclyze.config.settings import Settings
from doclyze.container import build_services
from doclyze.database.connection import close_pool, init_pool
from doclyze.logging.logger import Log
from doclyze.worker.worker import Worker


def main() -> None:
    """Entry point: initialize pool -> build dependencies -> start worker loop."""
    settings = Settings()
    Log.configure(settings.log_level)
    init_pool(settings)

    try:
        services = build_services(settings)
        worker = Worker(services.document_repo, services.preparation_runner, settings)
        worker.run()
    finally:
        close_pool()


if __name__ == "__main__":
    main()
