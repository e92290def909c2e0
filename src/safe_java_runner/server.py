from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from . import __version__
from .artifacts import Reaper
from .execution.capabilities import capabilities_for_toolchain, preflight_validate_toolchain
from .pipeline import CompileRequest, Pipeline
from .policy import RunnerPolicy

logger = logging.getLogger(__name__)

SERVICE_NAME = "Safe Java Runner"


class CompileBody(BaseModel):
    """JSON body of ``POST /compile``.

    ``code`` is left untyped so a wrong type reaches the pipeline's own
    validation and gets the regular 400 payload.

    Example:
        ```python
        body = CompileBody(code='System.out.println("hi");', language="java")
        ```
    """

    code: Any = None
    language: str | None = None
    version: str | None = None


def create_app(
    policy: RunnerPolicy | None = None,
    *,
    pipeline: Pipeline | None = None,
    reaper: Reaper | None = None,
) -> FastAPI:
    """Build the HTTP app around one shared pipeline and scratch reaper.

    Example:
        ```python
        app = create_app(RunnerPolicy.from_file("policy.toml"))
        ```
    """
    pipeline = pipeline or Pipeline(policy)
    policy = pipeline.policy
    reaper = reaper or Reaper(
        pipeline.store.root,
        max_age_seconds=policy.retention_seconds,
        interval_seconds=policy.sweep_interval_seconds,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Sweep and start the reaper on startup; remove scratch on shutdown.

        Example:
            ```python
            app = FastAPI(lifespan=lifespan)
            ```
        """
        logger.info("Starting %s...", SERVICE_NAME)
        pipeline.store.ensure()
        preflight_validate_toolchain(policy.compile_command, policy.run_command)
        reaper.start()
        logger.info("Scratch directory: %s", pipeline.store.root)
        try:
            yield
        finally:
            logger.info("Shutting down %s...", SERVICE_NAME)
            reaper.stop()
            pipeline.store.destroy()

    app = FastAPI(
        title=f"{SERVICE_NAME} API",
        description="Compiles and executes Java snippets under time limits",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.pipeline = pipeline
    app.state.reaper = reaper

    app.add_middleware(
        CORSMiddleware,
        allow_origins=policy.cors_allowed_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def invalid_body(request: Request, exc: RequestValidationError) -> JSONResponse:
        """Answer malformed JSON bodies with the regular 400 payload.

        Example:
            ```python
            # POST /compile with body "not json" -> 400
            ```
        """
        logger.info("Rejected malformed request body: %s", exc.errors()[:1])
        return JSONResponse(
            status_code=400,
            content={
                "success": False,
                "error": "Invalid request body",
                "output": "❌ Error: Request body must be JSON with a 'code' string",
                "executionTime": 0,
            },
        )

    @app.get("/")
    async def describe() -> dict[str, Any]:
        """Service descriptor.

        Example:
            ```python
            # GET / -> {"status": "running", "service": "Safe Java Runner", ...}
            ```
        """
        caps = capabilities_for_toolchain(policy.compile_command, policy.run_command)
        return {
            "status": "running",
            "service": SERVICE_NAME,
            "version": __version__,
            "language": policy.language,
            "notes": {
                "language": f"Accepted and ignored; every submission runs as {policy.language}",
                "version": "Accepted and ignored; the installed toolchain decides the language level",
            },
            "toolchain": {"compiler": caps.compiler is not None, "runtime": caps.runtime is not None},
            "endpoints": {"compile": "POST /compile", "health": "GET /health"},
        }

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Liveness check.

        Example:
            ```python
            # GET /health -> {"status": "healthy", "timestamp": "2026-10-19T12:00:00+00:00"}
            ```
        """
        return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}

    @app.post("/compile")
    def compile_code(body: CompileBody) -> JSONResponse:
        """Compile and run one submission.

        Declared sync so FastAPI runs it on its worker threads; a slow
        compile or run does not hold up other requests.

        Example:
            ```python
            # POST /compile {"code": "System.out.println(\\"hi\\");"} -> {"success": true, "output": "hi\\n", ...}
            ```
        """
        response = pipeline.submit(
            CompileRequest(source_text=body.code, language=body.language, version=body.version)
        )
        return JSONResponse(status_code=response.status_code, content=response.to_json())

    return app
