# app/main.py

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import os
import logging

from app.api.achievement import router as achievement_router
from app.api.auth import router as auth_router
from app.api.files import router as files_router
from app.api.profile import router as profile_router
from app.api.subject import router as subject_router
from app.api.user import router as user_router

from app.core.settings import settings
from app.core.exceptions import ConflictError, NotFoundError, StorageError, ValidationError

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("uvicorn.error")

app = FastAPI(
    title="Research Subject Tracker API",
    version="1.0.0",
    description="Research subjects, achievements and their derived statistics",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(achievement_router)
app.include_router(auth_router)
app.include_router(files_router)
app.include_router(profile_router)
app.include_router(subject_router)
app.include_router(user_router)

@app.get("/", tags=["Health"])
def root():
    return {"status": "Research Subject Tracker API is running!"}

@app.get("/health", tags=["Health"])
def health():
    return {"ok": True}

@app.on_event("startup")
async def startup_event():
    logger.info("Starting Research Subject Tracker API")

@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Stopping Research Subject Tracker API")

# Fallbacks for domain errors a router did not translate itself

@app.exception_handler(NotFoundError)
async def not_found_exception_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})

@app.exception_handler(ConflictError)
async def conflict_exception_handler(request: Request, exc: ConflictError):
    return JSONResponse(status_code=409, content={"detail": str(exc)})

@app.exception_handler(ValidationError)
async def validation_exception_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})

@app.exception_handler(StorageError)
async def storage_exception_handler(request: Request, exc: StorageError):
    logger.error(f"Storage error on {request.url.path}: {exc}")
    return JSONResponse(status_code=502, content={"detail": str(exc)})

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", 8000)),
        reload=settings.DEBUG and settings.ENV == "development",
    )
