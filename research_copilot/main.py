from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from research_copilot.api.routes import research
from research_copilot.config import settings
from research_copilot.errors import ResearchError
from research_copilot.services import logger as log_service


app = FastAPI(
    title="Research Copilot",
    description="Structured, sourced research briefs for business documents",
    version="0.1.0",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["POST", "OPTIONS"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
    expose_headers=["X-RateLimit-Remaining"],
)


@app.exception_handler(ResearchError)
async def research_error_handler(request: Request, exc: ResearchError):
    headers = {"Retry-After": str(exc.to_body()["resetIn"])} if exc.status_code == 429 else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_body(), headers=headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    log_service.log_event(
        event_type="invalid_request",
        message="Research request failed validation",
        errors=[e.get("msg") for e in exc.errors()][:5],
    )
    return JSONResponse(status_code=400, content={"error": "Invalid research request"})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    log_service.logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": ResearchError.default_message})


# Routes
app.include_router(research.router)


@app.get("/api/health")
async def health():
    return {"status": "ok", "service": "research-copilot"}
