"""Mail relay. Errors are returned as {"error": ...} for the existing frontend."""

from typing import Callable

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute

from dst_crm.auth.rbac import require_admin
from dst_crm.core.exceptions import ServiceError
from dst_crm.core.mailer import SmtpMailer, get_mailer

from .schemas import SendMailRequest, SendMailResponse
from . import service


def _error_message(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(x) for x in err.get("loc", ()) if x != "body")
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "; ".join(parts) or "Invalid request"


class ErrorShapeRoute(APIRoute):
    """Report request validation failures as 400 {"error": ...} instead of 422 {"detail": ...}."""

    def get_route_handler(self) -> Callable:
        original_handler = super().get_route_handler()

        async def handler(request: Request) -> Response:
            try:
                return await original_handler(request)
            except RequestValidationError as e:
                return JSONResponse(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    content={"error": _error_message(e)},
                )

        return handler


router = APIRouter(prefix="/api", tags=["mail"], route_class=ErrorShapeRoute)


@router.post(
    "/send-mail",
    response_model=SendMailResponse,
    dependencies=[Depends(require_admin)],
)
async def send_mail(
    payload: SendMailRequest,
    mailer: SmtpMailer = Depends(get_mailer),
):
    try:
        return await service.relay(mailer, payload)
    except ServiceError as e:
        return JSONResponse(status_code=e.status_code, content={"error": e.message})
