"""
Credscore — Worker Settings

Start with:
    arq credscore.workers.worker_settings.WorkerSettings
"""
from credscore.log import configure_logging
from credscore.workers.jobs import REDIS_SETTINGS, invalidate_scores, refresh_scores


async def startup(ctx):
    configure_logging()
    from credscore.pipeline import get_service
    ctx["service"] = get_service()


async def shutdown(ctx):
    from credscore.pipeline import shutdown as pipeline_shutdown
    await pipeline_shutdown()


class WorkerSettings:
    """arq worker configuration."""

    functions = [invalidate_scores, refresh_scores]

    on_startup = startup
    on_shutdown = shutdown

    redis_settings = REDIS_SETTINGS
    max_jobs = 10
    job_timeout = 300  # 5 minute timeout per job
