"""HTTP API for range queries, annotation lookups and PheWAS.

Errors raised by the query layer are translated into status codes here and
nowhere else.
"""

import asyncio
import logging
import sqlite3

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.background import BackgroundTask

from . import __version__
from .context import AtlasContext
from .errors import InvalidArgumentError, NoDataError, SourceNotFoundError
from .utils.validators import validate_snp_id

logger = logging.getLogger(__name__)


def get_context(request: Request) -> AtlasContext:
    return request.app.state.context


async def _invalid_argument(request: Request, exc: InvalidArgumentError) -> JSONResponse:
    logger.info("Rejected %s: %s", request.url.path, exc)
    return JSONResponse(status_code=400, content={"error": str(exc)})


async def _no_data(request: Request, exc: NoDataError) -> JSONResponse:
    logger.info("No data for %s: %s", exc.filename or request.url.path, exc)
    return JSONResponse(
        status_code=404, content={"error": str(exc), "pValueRange": exc.window.to_dict()}
    )


async def _source_not_found(request: Request, exc: SourceNotFoundError) -> JSONResponse:
    logger.error("%s", exc)
    return JSONResponse(status_code=500, content={"error": str(exc), "file": exc.filename})


def create_app(context: AtlasContext) -> FastAPI:
    """Build the application around an already-configured context."""
    app = FastAPI(
        title="gwas-atlas API",
        description="Significance-filtered range queries over tabix-indexed GWAS results",
        version=__version__,
    )
    app.state.context = context

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    app.add_exception_handler(InvalidArgumentError, _invalid_argument)
    app.add_exception_handler(NoDataError, _no_data)
    app.add_exception_handler(SourceNotFoundError, _source_not_found)

    @app.get("/api/health")
    async def health():
        """Health check endpoint."""
        return {"status": "ok", "version": __version__}

    @app.get("/api/queryGWASData")
    async def query_gwas_data(
        request: Request,
        phenoId: str | None = None,
        cohortId: str | None = None,
        study: str | None = None,
        minPValue: str | None = None,
        maxPValue: str | None = None,
    ):
        """Stream every record of a file whose p-value falls inside the window."""
        ctx = get_context(request)
        logger.info("Range query: phenoId=%s cohortId=%s study=%s", phenoId, cohortId, study)

        stream = await ctx.orchestrator.open_stream(
            phenoId, cohortId, study, min_p_value=minPValue, max_p_value=maxPValue
        )
        return StreamingResponse(
            stream.chunks(),
            media_type="application/json",
            background=BackgroundTask(stream.aclose),
        )

    @app.get("/api/nearestSNP")
    async def nearest_snp(
        request: Request, chromosome: str | None = None, position: str | None = None
    ):
        ctx = get_context(request)
        if ctx.annotations is None:
            return JSONResponse(
                status_code=503, content={"error": "Annotation database not configured"}
            )

        try:
            annotation = await ctx.annotations.nearest(chromosome, position)
        except sqlite3.Error as e:
            logger.error("Annotation lookup failed for %s:%s: %s", chromosome, position, e)
            return JSONResponse(
                status_code=500, content={"error": "Annotation lookup failed", "details": str(e)}
            )

        if annotation is None:
            return JSONResponse(status_code=404, content={"error": "SNP not found"})
        return annotation.to_dict()

    @app.get("/api/findfiles")
    async def find_files(request: Request, phenoId: str | None = None):
        """Report which study files exist for a phenotype."""
        return get_context(request).orchestrator.availability(phenoId).to_dict()

    @app.get("/api/getTopResults")
    async def get_top_results(
        request: Request,
        phenoId: str | None = None,
        cohortId: str | None = None,
        study: str | None = None,
    ):
        ctx = get_context(request)
        try:
            rows = await asyncio.to_thread(ctx.top_results, phenoId, cohortId, study)
        except (OSError, EOFError) as e:
            logger.error(
                "Error reading top results for %s.%s.%s: %s", phenoId, cohortId, study, e
            )
            return JSONResponse(status_code=500, content={"error": f"Error reading file: {e}"})

        if not rows:
            return JSONResponse(status_code=500, content={"error": "No data found in file"})
        return {"data": rows}

    @app.get("/api/phewas")
    async def phewas(request: Request, snp: str | None = None, study: str | None = None):
        """Associations of one SNP across every phenotype of a study."""
        ctx = get_context(request)
        snp = validate_snp_id(snp)
        try:
            result = await ctx.phewas.lookup(snp, study)
        except (FileNotFoundError, sqlite3.Error) as e:
            logger.error("Error in PheWAS lookup for %s: %s", snp, e)
            return JSONResponse(
                status_code=500, content={"error": "Error fetching PheWAS data", "details": str(e)}
            )
        return result.to_dict()

    return app
