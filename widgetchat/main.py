import logging

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import widgetchat.config.config as configs
from widgetchat.api.v1.route import api_router as MainRouter
from widgetchat.db import models  # noqa: F401
from widgetchat.db.session import Base, engine
from widgetchat.errors import NotFoundError, ValidationError

logging.basicConfig(level=configs.LOG_LEVEL)

app = FastAPI(title="widgetchat", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=configs.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router=MainRouter, prefix="/api/v1")


@app.on_event("startup")
def create_tables() -> None:
    Base.metadata.create_all(bind=engine)


@app.exception_handler(ValidationError)
async def validation_error_handler(_: Request, exc: ValidationError):
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})


@app.exception_handler(NotFoundError)
async def not_found_handler(_: Request, exc: NotFoundError):
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})


@app.get("/health")
async def health():
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
