# Copyright (c) Nex-AGI. All rights reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""FastAPI server for the tracking services."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, OperationalError

from sprintboard import __version__
from sprintboard.tracking import (
    ALL_MODELS,
    Clock,
    ConflictError,
    DashboardService,
    EpicService,
    InvalidArgumentError,
    InvalidStateError,
    NotFoundError,
    ReferentialValidator,
    SequenceAllocator,
    SprintService,
    TaskService,
    TrackerError,
    WorkspaceService,
)
from sprintboard.tracking.orm import DatabaseEngine
from sprintboard.transports.http.config import HTTPConfig
from sprintboard.transports.http.routes import (
    create_epic_router,
    create_sprint_router,
    create_task_router,
    create_workspace_router,
)

logger = logging.getLogger(__name__)

# InvalidState and Conflict share a status; clients tell them apart by ``code``.
_STATUS_BY_ERROR: dict[type[TrackerError], int] = {
    NotFoundError: 404,
    InvalidArgumentError: 400,
    InvalidStateError: 409,
    ConflictError: 409,
}


def status_for(exc: TrackerError) -> int:
    """Return the HTTP status for a tracking error, walking its class hierarchy."""
    for cls in type(exc).__mro__:
        status = _STATUS_BY_ERROR.get(cls)  # type: ignore[arg-type]
        if status is not None:
            return status
    return 500


class TrackerServer:
    """HTTP server exposing workspaces, sprints, tasks, epics and the workspace dashboard.

    The engine's tables are created when the app starts and its connections
    are released when the app shuts down.

    Example:
        >>> from sprintboard.tracking.orm import SQLDatabaseEngine
        >>> engine = SQLDatabaseEngine.from_url("sqlite+aiosqlite:///sprintboard.db")
        >>> server = TrackerServer(engine=engine, config=HTTPConfig(port=8000))
        >>> server.run()
    """

    def __init__(
        self,
        *,
        engine: DatabaseEngine,
        config: HTTPConfig | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._engine = engine
        self._config = config or HTTPConfig()

        validator = ReferentialValidator(engine=engine)
        allocator = SequenceAllocator(engine=engine)
        self.workspaces = WorkspaceService(engine=engine, clock=clock)
        self.sprints = SprintService(engine=engine, clock=clock, validator=validator)
        self.tasks = TaskService(engine=engine, clock=clock, validator=validator, allocator=allocator)
        self.epics = EpicService(engine=engine, clock=clock, validator=validator, allocator=allocator)
        self.dashboard = DashboardService(engine=engine, clock=clock, validator=validator, tz=self._config.zone)

        self.app = self._create_app()

    def _create_app(self) -> FastAPI:
        @asynccontextmanager
        async def lifespan(app: FastAPI):
            """Create tables on startup, release connections on shutdown."""
            await self._engine.setup_models(ALL_MODELS)
            self._is_running = True
            yield
            self._is_running = False
            await self._engine.dispose()

        app = FastAPI(
            title="Sprintboard",
            description="Workspace-scoped task, epic and sprint tracking",
            version=__version__,
            lifespan=lifespan,
        )

        # Configure CORS
        app.add_middleware(
            CORSMiddleware,
            allow_origins=self._config.cors_origins,
            allow_credentials=self._config.cors_credentials,
            allow_methods=self._config.cors_methods,
            allow_headers=self._config.cors_headers,
        )

        self._add_exception_handlers(app)
        self._add_routes(app)

        app.include_router(create_workspace_router(self.workspaces, self.dashboard))
        app.include_router(create_sprint_router(self.sprints))
        app.include_router(create_task_router(self.tasks))
        app.include_router(create_epic_router(self.epics))
        return app

    def _add_exception_handlers(self, app: FastAPI) -> None:
        @app.exception_handler(TrackerError)
        async def tracker_error(request: Request, exc: TrackerError) -> JSONResponse:  # pyright: ignore[reportUnusedFunction]
            status = status_for(exc)
            logger.info(f"{request.method} {request.url.path} -> {status} {exc.code}: {exc}")
            return JSONResponse(status_code=status, content={"code": exc.code, "detail": str(exc)})

        @app.exception_handler(IntegrityError)
        async def integrity_error(request: Request, exc: IntegrityError) -> JSONResponse:  # pyright: ignore[reportUnusedFunction]
            logger.warning(f"{request.method} {request.url.path} violated a constraint: {exc.orig}")
            return JSONResponse(
                status_code=409,
                content={"code": ConflictError.code, "detail": "Write conflicts with existing data"},
            )

        @app.exception_handler(OperationalError)
        async def operational_error(request: Request, exc: OperationalError) -> JSONResponse:  # pyright: ignore[reportUnusedFunction]
            logger.error(f"{request.method} {request.url.path} storage unavailable: {exc.orig}")
            return JSONResponse(
                status_code=503,
                content={"code": "unavailable", "detail": "Storage temporarily unavailable"},
            )

    def _add_routes(self, app: FastAPI) -> None:
        @app.get("/")
        async def root():  # pyright: ignore[reportUnusedFunction]
            """Root endpoint with service info."""
            return {
                "service": "Sprintboard",
                "version": self.app.version,
                "status": "running" if self.is_running else "uninitialized",
                "endpoints": {
                    "health": self.health_url,
                    "workspaces": "/workspaces",
                    "sprints": "/sprints",
                    "tasks": "/tasks",
                    "epics": "/epics",
                },
            }

        @app.get("/health")
        async def health():  # pyright: ignore[reportUnusedFunction]
            """Health check endpoint."""
            return {
                "status": "healthy" if self.is_running else "unhealthy",
            }

    @property
    def host(self) -> str:
        return self._config.host

    @property
    def port(self) -> int:
        return self._config.port

    @property
    def health_url(self) -> str:
        return f"http://{self.host}:{self.port}/health"

    @property
    def is_running(self) -> bool:
        return getattr(self, "_is_running", False)

    def run(self) -> None:
        """Run the server (blocking)."""
        import uvicorn

        uvicorn.run(
            self.app,
            host=self.host,
            port=self.port,
            log_level=self._config.log_level,
            loop="asyncio",
        )
