import http

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from schema.base import GenericResponseModel

from context_manager.context import context_user_data

from logger import logger

from utils.exception_handler import ShippingError, InternalError


# build a proper api response from the Generic response sent to it
def build_api_response(generic_response: GenericResponseModel) -> JSONResponse:
    try:
        response_json = jsonable_encoder(generic_response)

        # Remove the status_code key if it exists
        response_json.pop("status_code", None)

        res = JSONResponse(
            status_code=generic_response.status_code, content=response_json
        )

        logger.info(
            extra=context_user_data.get(),
            msg="build_api_response: Generated Response with status_code:"
            + f"{generic_response.status_code}",
        )
        return res

    except Exception as e:
        logger.error(
            extra=context_user_data.get(),
            msg=f"Exception in build_api_response error : {e}",
        )

        return JSONResponse(
            status_code=http.HTTPStatus.INTERNAL_SERVER_ERROR,
            content={"status": False, "message": "Failed to build the response", "data": {}},
        )


def success_response(data, message: str, status_code=http.HTTPStatus.OK):
    return GenericResponseModel(
        status_code=status_code, status=True, data=data, message=message
    )


# every failure crossing the module boundary is shaped here
def error_response(error: Exception) -> GenericResponseModel:
    if not isinstance(error, ShippingError):
        logger.error(
            extra=context_user_data.get(),
            msg="Unhandled error: {}".format(str(error)),
        )
        error = InternalError(
            "An internal server error occurred. Please try again later."
        )

    return GenericResponseModel(
        status_code=error.http_status,
        status=False,
        message=error.message,
        data=error.to_dict(),
    )


# last resort for controllers, the exception text stays in the logs
def unexpected_response(error: Exception, message: str) -> JSONResponse:
    logger.error(
        extra=context_user_data.get(),
        msg="{}: {}".format(message, str(error)),
    )
    return build_api_response(
        GenericResponseModel(
            status_code=http.HTTPStatus.INTERNAL_SERVER_ERROR,
            data={},
            message=message,
        )
    )
