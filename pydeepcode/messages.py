"""User-facing messages."""

RESTART_BUTTON = "Restart"

GENERAL_ERROR = "DeepCode encountered a problem."

NO_CONNECTION = (
    "We are having trouble connecting to the DeepCode server. "
    "We will retry automatically."
)

UNDEFINED_ERROR = "Undefined error"

FILE_LOADING_PROGRESS = "DeepCode is loading files"


def confirm_upload(folder_path: str) -> str:
    """Confirmation prompt shown before the first upload of a folder."""
    return f"Confirm remote analysis of {folder_path}"
