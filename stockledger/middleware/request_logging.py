# stockledger/middleware/request_logging.py

import time
import logging
from fastapi import Request

logger = logging.getLogger("access")


def _level_for(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


async def request_logging_middleware(request: Request, call_next):
    start_time = time.perf_counter()
    path = request.url.path
    if request.url.query:
        path = f"{path}?{request.url.query}"

    response = await call_next(request)

    process_time = round((time.perf_counter() - start_time) * 1000, 2)
    response.headers["X-Process-Time-Ms"] = str(process_time)

    logger.log(
        _level_for(response.status_code),
        "",
        extra={
            "client_addr": request.client.host if request.client else "unknown",
            # Set by the actor dependency; anonymous requests log "-"
            "actor_id": getattr(request.state, "actor_id", "-"),
            "method": request.method,
            "path": path,
            "status_code": response.status_code,
            "process_time_ms": process_time,
        },
    )

    return response
