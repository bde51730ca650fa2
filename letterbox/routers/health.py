from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

router = APIRouter(prefix="", tags=["health"])

# The plain HTTP responder answers every method, not just GET
_ANY_METHOD = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


@router.api_route("/health", methods=["GET", "HEAD"], response_class=PlainTextResponse)
async def health():
    return "OK"


@router.api_route("/{path:path}", methods=_ANY_METHOD, response_class=PlainTextResponse)
async def fallback(path: str):
    return "WS server is running"
