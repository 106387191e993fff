import asyncio
from typing import Dict, List, Optional
from pathlib import Path
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from application.dtos import CacheOutcome
from application.load_dependencies import LoadDependencies
from domain.errors import CacheError
from infrastructure.cli_tools import CliTools
from infrastructure.file_system_cache_repository import FileSystemCacheRepository
from infrastructure.manager_registry import DEFAULT_DESCRIPTOR_DIR, ManagerRegistry


class Config:
    def __init__(
        self,
        cache_dir: str,
        descriptor_dir: Optional[str] = None
    ):
        self.cache_dir = Path(cache_dir).expanduser().resolve()
        self.descriptor_dir = Path(descriptor_dir) if descriptor_dir else DEFAULT_DESCRIPTOR_DIR


class InstallRequestDTO(BaseModel):
    project_dir: str = Field(..., description="Directory containing the dependency manifests")
    managers: Optional[Dict[str, str]] = Field(
        None, description="Managers to run, mapped to extra install options (all available if omitted)"
    )
    force_refresh: bool = Field(False, description="Reinstall even when a cached archive exists")


class ErrorDTO(BaseModel):
    kind: str
    message: str


class OutcomeDTO(BaseModel):
    manager: str
    status: str
    cache_hit: bool
    cache_path: Optional[str] = None
    error: Optional[ErrorDTO] = None


class InstallResponseDTO(BaseModel):
    success: bool = Field(..., description="True when no manager reported an error")
    results: List[OutcomeDTO]


class HashRequestDTO(BaseModel):
    project_dir: str = Field(..., description="Directory containing the dependency manifests")
    managers: Optional[List[str]] = Field(None, description="Managers to hash (all available if omitted)")


class CacheKeyDTO(BaseModel):
    manager: str
    config_path: str
    digest: Optional[str] = None
    cli_version: Optional[str] = None
    cache_path: Optional[str] = None
    cached: bool = False
    error: Optional[ErrorDTO] = None


class HashResponseDTO(BaseModel):
    keys: List[CacheKeyDTO]


config: Optional[Config] = None
registry: Optional[ManagerRegistry] = None
cache_repository: Optional[FileSystemCacheRepository] = None
loader: Optional[LoadDependencies] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    global registry, cache_repository, loader
    if config:
        cli_tools = CliTools()
        registry = ManagerRegistry(config.descriptor_dir, cli_tools=cli_tools)
        cache_repository = FileSystemCacheRepository(config.cache_dir)
        loader = LoadDependencies(cli_tools=cli_tools)
    yield
    # Shutdown
    pass


app = FastAPI(
    title="Dependency Install Cache",
    description="Restores installed dependencies from archives keyed by manifest hash",
    version="1.0.0",
    lifespan=lifespan
)


def _require_configured() -> None:
    if not config or not registry or not cache_repository or not loader:
        raise HTTPException(status_code=500, detail="Server not properly configured")


def _project_dir(project_dir: str) -> Path:
    path = Path(project_dir).expanduser()
    if not path.is_absolute():
        raise HTTPException(status_code=400, detail="project_dir must be an absolute path")
    if not path.is_dir():
        raise HTTPException(status_code=400, detail=f"Project directory {project_dir} does not exist")
    return path


def _error_dto(error: Optional[CacheError]) -> Optional[ErrorDTO]:
    if error is None:
        return None
    return ErrorDTO(**error.to_dict())


def _outcome_dto(outcome: CacheOutcome) -> OutcomeDTO:
    return OutcomeDTO(
        manager=outcome.manager,
        status=outcome.status.value,
        cache_hit=outcome.is_cache_hit,
        cache_path=str(outcome.cache_path) if outcome.cache_path else None,
        error=_error_dto(outcome.error)
    )


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


@app.get("/v1/managers")
async def list_managers():
    """List the package managers this server can cache."""
    _require_configured()
    return {"managers": {name: str(path) for name, path in registry.list_available().items()}}


@app.post("/v1/install", response_model=InstallResponseDTO)
async def install_dependencies(request: InstallRequestDTO):
    """
    Restore or install dependencies of a project.

    For every requested manager this:
    1. Skips it if the project has no manifest for it
    2. Extracts the cached archive when the manifest hash is known
    3. Otherwise runs the install command and archives the result
    """
    _require_configured()
    project_dir = _project_dir(request.project_dir)
    managers = request.managers
    if managers is None:
        managers = {name: "" for name in registry.list_available()}

    try:
        configs = registry.build_configs(
            managers.keys(),
            config.cache_dir,
            work_dir=project_dir,
            force_refresh=request.force_refresh,
            install_options=managers
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    outcomes = await loader.load_all(configs)
    return InstallResponseDTO(
        success=all(outcome.success for outcome in outcomes),
        results=[_outcome_dto(outcome) for outcome in outcomes]
    )


@app.post("/v1/hash", response_model=HashResponseDTO)
async def hash_manifests(request: HashRequestDTO):
    """Compute the cache keys of a project's manifests without installing."""
    _require_configured()
    project_dir = _project_dir(request.project_dir)
    names = request.managers if request.managers is not None else list(registry.list_available())

    try:
        configs = registry.build_configs(names, config.cache_dir, work_dir=project_dir)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    keys = []
    for manager_config in configs:
        if not manager_config.config_path.exists():
            continue
        try:
            info = await asyncio.to_thread(loader.describe, manager_config)
        except CacheError as e:
            keys.append(CacheKeyDTO(
                manager=manager_config.cli_name,
                config_path=str(manager_config.config_path),
                error=_error_dto(e)
            ))
            continue
        keys.append(CacheKeyDTO(
            manager=info.manager,
            config_path=str(info.config_path),
            digest=info.digest,
            cli_version=info.cli_version,
            cache_path=str(info.cache_path),
            cached=info.cached
        ))
    return HashResponseDTO(keys=keys)


@app.get("/v1/cache/stats")
async def cache_stats():
    """Statistics about the archives in the cache."""
    _require_configured()
    return cache_repository.get_cache_stats()


@app.delete("/v1/cache")
async def clean_cache():
    """Remove every cached archive."""
    _require_configured()
    try:
        removed = cache_repository.clean()
    except OSError as e:
        raise HTTPException(status_code=500, detail=f"Error cleaning cache: {str(e)}")
    return {"removed": removed}


def initialize_app(
    cache_dir: str,
    descriptor_dir: Optional[str] = None
):
    """Initialize the FastAPI application with configuration."""
    global config

    config = Config(
        cache_dir=cache_dir,
        descriptor_dir=descriptor_dir
    )

    # Create cache directory if it doesn't exist
    config.cache_dir.mkdir(parents=True, exist_ok=True)

    return app
