"""FastAPI trigger for the autonomous claims agent."""

from __future__ import annotations

import hmac
import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from claims_autopilot import agent
from claims_autopilot.utils.errors import AutopilotError, UnauthorizedTriggerError


APP_TITLE = "Claims Autopilot"

logger = logging.getLogger(__name__)

app = FastAPI(title=APP_TITLE)


def _verify_secret(provided: Optional[str]) -> None:
    """Compare the trigger header to the configured secret in constant time."""

    expected = agent.load_config().trigger.cron_secret
    if not expected:
        raise UnauthorizedTriggerError.rejected("no trigger secret is configured")
    if not provided or not hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8")):
        raise UnauthorizedTriggerError.rejected("trigger secret mismatch")


@app.post("/api/run")
async def run_cycle(request: Request) -> JSONResponse:
    try:
        header_name = agent.load_config().trigger.header_name
        _verify_secret(request.headers.get(header_name))
    except UnauthorizedTriggerError as e:
        logger.warning(f"Rejected run trigger: {e}")
        return JSONResponse({"error": "Unauthorized"}, status_code=401)
    except Exception as e:
        # Without a readable configuration the secret cannot be checked.
        logger.error(f"Could not load trigger configuration: {str(e)}")
        return JSONResponse({"error": "Unauthorized"}, status_code=401)

    try:
        results: Dict[str, Any] = await run_in_threadpool(agent.run_agent)
    except AutopilotError as e:
        logger.error(f"Agent run failed: {e}")
        return JSONResponse({"success": False, "error": str(e)}, status_code=500)

    return JSONResponse({"success": True, "results": results})


@app.get("/health")
async def healthcheck() -> Dict[str, str]:
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("server:app", host="0.0.0.0", port=8000)
