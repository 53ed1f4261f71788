import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from .exceptions import GalleryError
from .logging_utils import setup_logging
from .routers import webhook, sync, submissions, like, proxy

setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI()

origins = ["*"]

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Added after CORSMiddleware so it runs first: every OPTIONS gets an empty 200
@app.middleware("http")
async def answer_preflight(request: Request, call_next):
    if request.method == "OPTIONS":
        return Response(status_code=200, headers=CORS_HEADERS)
    return await call_next(request)

@app.exception_handler(GalleryError)
async def gallery_error_handler(request: Request, exc: GalleryError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)

@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    messages = [f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()]
    return JSONResponse(status_code=400, content={"error": "; ".join(messages)})

@app.get("/")
async def root():
    return {"message": "Submission gallery backend"}

app.include_router(webhook.router)
app.include_router(sync.router)
app.include_router(submissions.router)
app.include_router(like.router)
app.include_router(proxy.router)
