import http
from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text

from database import db

StatusRouter = APIRouter(tags=["health_checks"])


# normal status check
@StatusRouter.get("/status", status_code=http.HTTPStatus.OK)
async def status_check():
    return JSONResponse(status_code=http.HTTPStatus.OK, content={"status": "OK"})


# deep check, db connection and registered couriers
@StatusRouter.get("/deepstatus", status_code=http.HTTPStatus.OK)
async def deep_status_check():
    from data.courier_service_mapping import courier_service_mapping

    with db.db_engine.connect() as connection:
        is_db_ok = connection.execute(text("SELECT 'true'")).scalar() == "true"

    if not is_db_ok:
        return JSONResponse(
            status_code=http.HTTPStatus.INTERNAL_SERVER_ERROR,
            content={"error": "db not connected"},
        )

    return JSONResponse(
        status_code=http.HTTPStatus.OK,
        content={"db": is_db_ok, "couriers": sorted(courier_service_mapping)},
    )
