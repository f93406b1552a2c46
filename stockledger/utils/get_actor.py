from fastapi import HTTPException, Header, Request, status

from stockledger.core.security import decode_access_token
from stockledger.utils.logger import get_logger

logger = get_logger("auth.guard")


async def get_actor_id(
    request: Request,
    authorization: str | None = Header(None),
) -> str:
    """Opaque id of the authenticated caller; recorded on every mutation."""
    if not authorization or not authorization.startswith("Bearer "):
        logger.warning("Missing bearer token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header",
        )

    token = authorization.split("Bearer ")[1].strip()
    payload = decode_access_token(token)

    actor_id = str(payload["sub"])
    request.state.actor_id = actor_id
    return actor_id
