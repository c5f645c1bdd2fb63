import logging

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from crossql.packages.common.crossql_common.errors.application_errors import InvalidRequest
from crossql.packages.common.crossql_common.errors.connector_errors import BackendUnavailableError, ConnectorError
from crossql.packages.common.crossql_common.errors.federation_errors import FederationError


def _error_response(status_code: int, exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": type(exc).__name__, "message": str(exc)},
    )


class ErrorMiddleware(BaseHTTPMiddleware):
    def __init__(self, app):
        super().__init__(app)
        self.logger = logging.getLogger(__name__)

    async def dispatch(self, request, call_next):
        try:
            response = await call_next(request)
        except InvalidRequest as e:
            self.logger.error("Invalid request", exc_info=True)
            response = _error_response(400, e)
        except FederationError as e:
            self.logger.error("Federation error", exc_info=True)
            response = _error_response(400, e)
        except BackendUnavailableError as e:
            self.logger.error("Backend unavailable", exc_info=True)
            response = _error_response(503, e)
        except ConnectorError as e:
            self.logger.error("Connector error", exc_info=True)
            response = _error_response(502, e)
        except Exception:
            self.logger.error("Unknown error", exc_info=True)
            response = JSONResponse(
                status_code=500,
                content={"error": "InternalServerError", "message": "An unexpected error occurred."},
            )

        return response
