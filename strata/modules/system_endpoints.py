import logging
from fastapi import APIRouter, HTTPException
from strata.core.exceptions import ConfigurationError, ConnectivityError, MigrationError
from strata.modules.config import get_migration_dir, load_config
from strata.services.database.adapter_factory import AdapterFactory
from strata.services.database.migration_runner import MigrationRunner, execute_migration_workflow

logger = logging.getLogger("strata.api.system")

router = APIRouter(prefix="/api/system", tags=["System"])


def _http_error(e: MigrationError) -> HTTPException:
    if isinstance(e, ConfigurationError):
        return HTTPException(status_code=400, detail=str(e))
    if isinstance(e, ConnectivityError):
        return HTTPException(status_code=503, detail=str(e))
    return HTTPException(status_code=500, detail=str(e))


@router.post("/migrate")
async def trigger_migrations(backend: str = "postgres"):
    """
    Checks and runs pending database migrations for a migrations folder.
    Useful for production hooks (Cloud Run jobs).
    """
    try:
        config = load_config(backend)
        migrations_dir = get_migration_dir(config.backend)
        result = await execute_migration_workflow(config.backend, config.database_url, migrations_dir)
    except MigrationError as e:
        logger.error(f"Migration run failed: {e}")
        raise _http_error(e)

    return {"status": "success", **result.to_dict()}


@router.get("/migrations")
async def list_migrations(backend: str = "postgres"):
    """
    Lists every migration file with its applied/pending status.
    """
    try:
        config = load_config(backend)
        migrations_dir = get_migration_dir(config.backend)
        adapter = AdapterFactory.create(config.backend, config.database_url)
        async with MigrationRunner(adapter, migrations_dir) as runner:
            states = await runner.status()
    except MigrationError as e:
        raise _http_error(e)

    return {"migrations": [s.to_dict() for s in states]}
