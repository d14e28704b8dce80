import asyncio
import json

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from logger import logger
from utils.exception_handler import (
    ShippingError,
    format_validation_errors,
    handle_validation_error,
    shipping_error_handler,
    custom_http_exception_handler,
)

from router import CommonRouter, StatusRouter

from database.db import init_models  # sync DB init

app = FastAPI(title="Courier rates")

# Routers
app.include_router(CommonRouter)
app.include_router(StatusRouter)

# Exception handlers
app.add_exception_handler(ValidationError, handle_validation_error)
app.add_exception_handler(ShippingError, shipping_error_handler)
app.add_exception_handler(HTTPException, custom_http_exception_handler)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# -------------------------------
# Startup event
# -------------------------------
@app.on_event("startup")
async def startup_event():
    loop = asyncio.get_running_loop()
    # Initialize DB safely in executor
    await loop.run_in_executor(None, init_models)
    logger.info("Tables ready")


# -------------------------------
# Validation error handler
# -------------------------------
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    raw = (await request.body()).decode("utf-8", "ignore")
    logger.error("422 on %s\nBody: %s\nErrors: %s", request.url, raw, exc.errors())
    try:
        parsed = json.loads(raw) if raw else None
    except json.JSONDecodeError:
        parsed = raw

    content = format_validation_errors(exc.errors())
    content["body"] = parsed
    return JSONResponse(status_code=422, content=content)


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
