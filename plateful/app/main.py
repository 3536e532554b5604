# plateful/app/main.py
from __future__ import annotations

import logging
import sys

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from plateful import __version__
from plateful.app.config import settings
from plateful.app.routers.chat import router as chat_router
from plateful.app.routers.generate import router as generate_router
from plateful.app.routers.recipes import router as recipes_router

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

app = FastAPI(title="Plateful Recipes API", version=__version__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.FRONTEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(generate_router)
app.include_router(chat_router)
app.include_router(recipes_router)


def _validation_errors(exc: RequestValidationError) -> list[dict[str, str]]:
    return [
        {"loc": ".".join(str(part) for part in error.get("loc", ())), "msg": str(error.get("msg", ""))}
        for error in exc.errors()
    ]


@app.exception_handler(RequestValidationError)
async def invalid_request_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": {"error": "Invalid request body", "errors": _validation_errors(exc)}},
    )


@app.get("/health")
def health():
    return {"ok": True}
