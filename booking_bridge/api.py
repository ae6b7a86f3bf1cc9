import asyncio
import json
import logging
import traceback
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from . import config
from .client import create_web_call
from .models import RetellCall, VapiResponse, VapiToolResult, VapiWebhook
from .scheduling import dispatch
from .store import AppointmentStore, create_store

logger = logging.getLogger("booking_bridge.api")

# Headers sent by the standalone Retell handler on every response.
RETELL_CORS_HEADERS = {
    "Access-Control-Allow-Credentials": "true",
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET,OPTIONS,PATCH,DELETE,POST,PUT",
    "Access-Control-Allow-Headers": (
        "X-CSRF-Token, X-Requested-With, Accept, Accept-Version, Content-Length, "
        "Content-MD5, Content-Type, Date, X-Api-Version"
    ),
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.store = await create_store()
    yield


app = FastAPI(title="Booking Bridge", lifespan=lifespan)
# Browser preflights (OPTIONS with Origin and Access-Control-Request-Method) are
# answered here, before any route runs.
app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])


def get_store(request: Request) -> Optional[AppointmentStore]:
    """Shared store created at startup; None when Supabase is not configured."""
    return getattr(request.app.state, "store", None)


def _internal_error() -> PlainTextResponse:
    return PlainTextResponse("Internal Server Error", status_code=500)


def write_error_log(exc: BaseException) -> None:
    """Dump the traceback to WEBHOOK_ERROR_LOG. Best effort: never raises."""
    try:
        with open(config.WEBHOOK_ERROR_LOG, "w") as fh:
            fh.write("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)))
    except OSError as err:
        logger.warning(f"Could not write {config.WEBHOOK_ERROR_LOG}: {err}")


async def _handle_retell(request: Request, store: Optional[AppointmentStore]) -> dict:
    body = await request.json()
    logger.info(f"Received Retell request: {json.dumps(body, indent=2)}")
    call = RetellCall.model_validate(body)
    return await dispatch(call.name, call.args, store)


# Voice platform webhooks ----------------------------------------------------

@app.post("/vapi-webhook")
async def vapi_webhook(request: Request, store: Optional[AppointmentStore] = Depends(get_store)):
    """Run the first tool call of a Vapi ``tool-calls`` message; ACK everything else."""
    try:
        body = await request.json()
        logger.info(f"Received Vapi request: {json.dumps(body, indent=2)}")
        webhook = VapiWebhook.model_validate(body)
        if webhook.message.type != "tool-calls":
            return PlainTextResponse("OK")

        tool_call = webhook.message.tool_calls[0]
        args = tool_call.function.arguments
        if isinstance(args, str):
            args = json.loads(args)
        result = await dispatch(tool_call.function.name, args, store)

        # Vapi wants the result as a JSON string keyed by the tool call id
        payload = VapiResponse(results=[
            VapiToolResult(tool_call_id=tool_call.id, result=json.dumps(result, separators=(",", ":"))),
        ])
        return payload.model_dump(by_alias=True)
    except Exception:
        logger.exception("Error processing Vapi webhook")
        return _internal_error()


@app.post("/retell-webhook")
async def retell_webhook(request: Request, store: Optional[AppointmentStore] = Depends(get_store)):
    """Run a Retell function call and answer with the raw result."""
    try:
        return await _handle_retell(request, store)
    except Exception as exc:
        await asyncio.to_thread(write_error_log, exc)
        logger.exception("Error processing Retell webhook")
        return _internal_error()


@app.api_route("/api/retell-webhook", methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"])
async def retell_webhook_standalone(request: Request, store: Optional[AppointmentStore] = Depends(get_store)):
    """Browser-callable variant of /retell-webhook with explicit CORS and method handling."""
    if request.method == "OPTIONS":
        return Response(status_code=200, headers=RETELL_CORS_HEADERS)
    if request.method != "POST":
        return JSONResponse({"error": "Method Not Allowed"}, status_code=405, headers=RETELL_CORS_HEADERS)

    try:
        result = await _handle_retell(request, store)
    except Exception:
        logger.exception("Error processing Retell webhook")
        return PlainTextResponse("Internal Server Error", status_code=500, headers=RETELL_CORS_HEADERS)
    return JSONResponse(result, status_code=200, headers=RETELL_CORS_HEADERS)


# Web call proxy -------------------------------------------------------------

@app.get("/api/create-web-call")
async def web_call():
    """Start a Retell web call and hand the access token back to the browser."""
    try:
        return await create_web_call()
    except Exception as exc:
        logger.error(f"Error creating web call: {exc}")
        return JSONResponse({"error": str(exc)}, status_code=500)


@app.get("/health")
async def health(store: Optional[AppointmentStore] = Depends(get_store)):
    return {"status": "ok", "store_configured": store is not None}
