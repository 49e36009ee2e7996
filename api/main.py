import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.engine import JobEngine
from common.config import LOG_LEVEL
from common.errors import JobValidationError
from common.job_schema import Job, JobSubmission
from common.stores import load_store_lookup

logger = logging.getLogger(__name__)


def create_app(engine: Optional[JobEngine] = None) -> FastAPI:
    logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    if engine is None:
        engine = JobEngine(store_lookup=load_store_lookup())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await app.state.engine.aclose()

    app = FastAPI(title="Store Visit Image Jobs API", lifespan=lifespan)
    app.state.engine = engine

    # ---------- error handlers ----------

    @app.exception_handler(RequestValidationError)
    async def invalid_body(request: Request, exc: RequestValidationError):
        first = exc.errors()[0] if exc.errors() else {}
        loc = [str(p) for p in first.get("loc", ()) if p != "body"]
        if loc == ["count"] and first.get("type") == "int_type":
            return JSONResponse(status_code=400, content={"error": "Invalid job data: count does not match number of visits"})
        if loc in (["count"], ["visits"]):
            return JSONResponse(status_code=400, content={"error": "Invalid job data: missing required fields"})
        where = ".".join(loc)
        return JSONResponse(
            status_code=400,
            content={"error": f"Invalid job data: {where or 'body'}: {first.get('msg', 'invalid')}"},
        )

    @app.exception_handler(JobValidationError)
    async def rejected_job(request: Request, exc: JobValidationError):
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        # unmatched routes and methods both look like a missing resource
        if exc.status_code == 405 or exc.detail == "Not Found":
            return JSONResponse(status_code=404, content={"error": "Not found"})
        detail = exc.detail
        return JSONResponse(status_code=exc.status_code, content={"error": detail})

    @app.exception_handler(Exception)
    async def unhandled(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    # ---------- API endpoints ----------

    @app.post("/api/submit", status_code=201)
    async def submit_job(body: JobSubmission, request: Request):
        job_id = await request.app.state.engine.submit(body)
        return {"job_id": job_id}

    @app.get("/api/status")
    def job_status(request: Request, jobid: Optional[str] = None):
        if not jobid:
            return JSONResponse(status_code=400, content={"error": "Missing jobid parameter"})
        snapshot = request.app.state.engine.get_status(jobid)
        if snapshot is None:
            return JSONResponse(status_code=400, content={})
        return snapshot.model_dump(mode="json", exclude_none=True)

    @app.get("/api/jobs/{job_id}", response_model=Job)
    def read_job(request: Request, job_id: str):
        job = request.app.state.engine.get_job(job_id)
        if not job:
            raise HTTPException(status_code=404, detail="Job not found")
        return job

    @app.get("/api/health")
    def health(request: Request):
        stores = request.app.state.engine.store_lookup
        return {
            "status": "ok",
            "message": "Service is running",
            "stores_loaded": len(stores),
            "sample_stores": stores.sample_ids(3),
        }

    return app


app = create_app()
