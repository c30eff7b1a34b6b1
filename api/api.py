"""
Curriculum service entrypoint.

    uvicorn api.api:app --reload
"""

from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse, Response
from starlette.status import HTTP_500_INTERNAL_SERVER_ERROR

from api.bootstrap import close_llm, get_llm
from api.config import create_db, get_settings
from api.routes.curriculum_routes import curriculum_routes
from api.utils.logger import clear_request_id, configure_logging, set_request_id

settings = get_settings()
logger = configure_logging(level=settings.log_level, log_dir=settings.log_dir)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    create_db()
    # A hosted provider without an API key fails startup here.
    get_llm()
    logger.info(
        "curriculum service up provider=%s model=%s", settings.generation_provider, settings.generation_model
    )
    yield
    # Hosted client keeps a connection pool open for the process lifetime.
    await close_llm()


app = FastAPI(title="Curriculum Service", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_context(request: Request, call_next):
    # EventSource cannot send headers, so /curriculum/stream may pass ?rid= instead.
    rid = set_request_id(request.headers.get("x-request-id") or request.query_params.get("rid"))
    started = request.method, request.url.path
    try:
        logger.info("request start method=%s path=%s", *started)
        response: Response = await call_next(request)
        logger.info("request end method=%s path=%s status=%s", *started, response.status_code)
        response.headers["x-request-id"] = rid
        return response
    finally:
        clear_request_id()


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.warning
    log("http error status=%s path=%s detail=%s", exc.status_code, request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = jsonable_encoder(exc.errors())
    logger.warning("invalid request path=%s errors=%s", request.url.path, errors)
    return JSONResponse(status_code=422, content={"detail": errors})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    # Generation failures never reach here (the pipeline degrades instead); this is a bug path.
    logger.exception("unhandled error method=%s path=%s", request.method, request.url.path)
    return JSONResponse(status_code=HTTP_500_INTERNAL_SERVER_ERROR, content={"detail": "Internal Server Error"})


@app.get("/")
def read_root():
    return {"message": "Curriculum service is healthy"}


app.include_router(curriculum_routes, prefix="/curriculum")


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
