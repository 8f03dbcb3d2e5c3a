"""Error handling helpers for matrix orchestration."""
from typing import Any, Dict
import logging

from src.integrations.contracts.errors import GatewayError, HTTPStatusFailure, LookupTimeout, NetworkUnavailable
from src.integrations.policy.response_wrappers import IntegrationResponseError

logger = logging.getLogger(__name__)

BACKEND_UNREACHABLE = "백엔드 서버 연결 실패"
SERVER_ERROR = "서버 내부 오류"
LOOKUP_FAILED = "데이터 조회 실패"

# Failures a lookup is expected to raise; anything else is a bug.
LOOKUP_ERRORS = (GatewayError, IntegrationResponseError)


def describe_failure(exc: BaseException) -> str:
    """Map a lookup failure onto the row-level diagnostic shown to the user."""
    if isinstance(exc, NetworkUnavailable):
        return BACKEND_UNREACHABLE
    if isinstance(exc, HTTPStatusFailure) and exc.is_server_error:
        return SERVER_ERROR
    if isinstance(exc, LookupTimeout):
        return f"{LOOKUP_FAILED}: 요청 타임아웃 ({exc.timeout_seconds:g}s)"
    return f"{LOOKUP_FAILED}: {exc}"


class ErrorHandler:
    def handle_exception(self, exc: Exception, context: Dict[str, Any] = None) -> Dict[str, Any]:
        logger.error("Unhandled exception in matrix orchestration: %s", exc, exc_info=True)
        return {
            "message": "An internal error occurred while building the premium matrix. Please try again later.",
            "fallback": True,
            "metadata": {"error": str(exc), "kind": type(exc).__name__, "context": context or {}},
        }
