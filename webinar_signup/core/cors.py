from starlette.datastructures import Headers
from starlette.responses import Response
from fastapi.middleware.cors import CORSMiddleware


class NoContentPreflightCORSMiddleware(CORSMiddleware):
    """CORSMiddleware that acknowledges successful preflights with 204 and no body."""

    def preflight_response(self, request_headers: Headers) -> Response:
        response = super().preflight_response(request_headers)
        if response.status_code != 200:
            return response

        headers = {
            key: value
            for key, value in response.headers.items()
            if key not in ("content-length", "content-type")
        }
        return Response(status_code=204, headers=headers)
