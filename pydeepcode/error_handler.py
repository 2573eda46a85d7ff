"""Classification of errors into recovery actions.

Every failure surfaced to the user goes through :class:`ErrorHandler`,
which reports it to the backend, picks an :class:`ErrorAction` and runs
the matching recovery path through injected collaborators.
"""

import json
import logging
import time
from enum import Enum
from typing import Any, Callable, Optional, Protocol

from . import messages
from .exceptions import (
    DeepCodeAPIError,
    DeepCodeNetworkError,
    EncodingError,
    FileSystemError,
)

logger = logging.getLogger(__name__)

UNAUTHORIZED_USER = 401
UNAUTHORIZED_CONTENT = 403
NOT_FOUND = 404
SERVER_ERROR = 500
BAD_GATEWAY = 502
SERVICE_UNAVAILABLE = 503
TIMEOUT = 504

# Seconds to wait before re-running the top-level command
DEFAULT_RECONNECT_DELAY: float = 5.0

# Seconds to wait before resuming analysis after an auth/not-found error
DEFAULT_RESUME_DELAY: float = 1.0


class ErrorAction(str, Enum):
    """Recovery path chosen for an error."""

    RECONNECT = "reconnect"
    """Notify, wait, then re-run the top-level command"""

    RESUME_ANALYSIS = "resume_analysis"
    """Wait briefly, then resume analysis actions"""

    SYSTEM_ERROR = "system_error"
    """Show the error text and offer a restart"""

    PROMPT_RESTART = "prompt_restart"
    """Show a general error and offer a restart"""


class Notifier(Protocol):
    """Displays errors to the user."""

    def show_error(self, message: str, *buttons: str) -> Optional[str]:
        """Show an error with optional buttons.

        Returns:
            The pressed button, or None if dismissed
        """
        ...


class ErrorReporter(Protocol):
    """Receives error reports (usually DeepCodeClient)."""

    def report_error(self, error_data: dict[str, Any]) -> Any: ...


class ErrorHandler:
    """Maps errors to recovery actions and runs them."""

    def __init__(
        self,
        notifier: Notifier,
        restart_command: Callable[[], Any],
        resume_analysis: Optional[Callable[[], Any]] = None,
        reporter: Optional[ErrorReporter] = None,
        backend_host: Optional[str] = None,
        reconnect_delay: float = DEFAULT_RECONNECT_DELAY,
        resume_delay: float = DEFAULT_RESUME_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize error handler.

        Args:
            notifier: Shows messages and returns the user's choice
            restart_command: Re-runs the top-level command
            resume_analysis: Re-enables analysis actions (defaults to
                restart_command)
            reporter: Sends error reports to the backend
            backend_host: Host whose address resolution failures trigger a
                reconnect; any host matches when None
            reconnect_delay: Seconds to wait before restarting
            resume_delay: Seconds to wait before resuming analysis
            sleep: Sleep function
        """
        self.notifier = notifier
        self.restart_command = restart_command
        self.resume_analysis = resume_analysis or restart_command
        self.reporter = reporter
        self.backend_host = backend_host
        self.reconnect_delay = reconnect_delay
        self.resume_delay = resume_delay
        self._sleep = sleep

    def classify(self, error: BaseException) -> ErrorAction:
        """Pick the recovery action for an error."""
        if isinstance(error, DeepCodeNetworkError):
            if error.address_resolution_failed and (
                self.backend_host is None or error.host == self.backend_host
            ):
                return ErrorAction.RECONNECT
            return ErrorAction.PROMPT_RESTART

        if isinstance(error, (FileSystemError, EncodingError, OSError)):
            return ErrorAction.SYSTEM_ERROR

        status_code = getattr(error, "status_code", None)
        if isinstance(error, DeepCodeAPIError) and status_code is not None:
            if status_code in (UNAUTHORIZED_USER, NOT_FOUND):
                return ErrorAction.RESUME_ANALYSIS
            if status_code == UNAUTHORIZED_CONTENT or 500 <= status_code < 600:
                return ErrorAction.RECONNECT

        return ErrorAction.PROMPT_RESTART

    def process_error(
        self,
        error: BaseException,
        message: Optional[str] = None,
        endpoint: Optional[str] = None,
        bundle_id: Optional[str] = None,
        data: Optional[dict[str, Any]] = None,
    ) -> ErrorAction:
        """Report an error and run its recovery path.

        Args:
            error: The error that occurred
            message: Description sent with the report
            endpoint: API endpoint involved, if any
            bundle_id: Bundle involved, if any
            data: Extra data sent with the report

        Returns:
            The action that was taken
        """
        self._send_report(error, message, endpoint, bundle_id, data)

        action = self.classify(error)
        logger.debug(f"Handling {type(error).__name__} as {action.value}")

        if action == ErrorAction.RECONNECT:
            self.notifier.show_error(messages.NO_CONNECTION)
            self._sleep(self.reconnect_delay)
            self.restart_command()
        elif action == ErrorAction.RESUME_ANALYSIS:
            self._sleep(self.resume_delay)
            self.resume_analysis()
        elif action == ErrorAction.SYSTEM_ERROR:
            self._offer_restart(str(error))
        else:
            self._offer_restart(messages.GENERAL_ERROR)
        return action

    def _offer_restart(self, text: str) -> None:
        pressed = self.notifier.show_error(text, messages.RESTART_BUTTON)
        if pressed == messages.RESTART_BUTTON:
            self.restart_command()

    def _send_report(
        self,
        error: BaseException,
        message: Optional[str],
        endpoint: Optional[str],
        bundle_id: Optional[str],
        data: Optional[dict[str, Any]],
    ) -> None:
        if self.reporter is None:
            return

        status_code = getattr(error, "status_code", None)
        report: dict[str, Any] = {
            "type": f"{status_code or ''} {type(error).__name__}".strip(),
            "message": message or messages.UNDEFINED_ERROR,
            "data": {
                "errorTrace": json.dumps({"error": str(error)}),
                **(data or {}),
            },
        }
        if endpoint:
            report["path"] = endpoint
        if bundle_id:
            report["bundleId"] = bundle_id

        try:
            self.reporter.report_error(report)
        except Exception as e:
            logger.warning(f"Failed to report error: {e}")
