from typing import Optional

from relay.logging_config import get_logger
from relay.services.line_service import LineAPIError, LineService

logger = get_logger("identity_service")


async def resolve_speaker(line_service: LineService, user_id: Optional[str]) -> Optional[str]:
    """Best-effort display name for the sender. Never raises: the name is cosmetic."""
    if not user_id:
        logger.warning("User ID not found in event source")
        return None

    try:
        profile = await line_service.get_profile(user_id)
    except LineAPIError as e:
        if e.is_not_found:
            logger.warning(
                "User profile not found",
                extra={"context": {"user_id": user_id}},
            )
        else:
            logger.error(
                f"Error fetching user profile: {e}",
                extra={"context": {"user_id": user_id, "status_code": e.status_code}},
            )
        return None
    except Exception as e:
        logger.error(
            f"Unexpected error fetching user profile: {e}",
            extra={"context": {"user_id": user_id}},
            exc_info=True,
        )
        return None

    return profile.display_name
