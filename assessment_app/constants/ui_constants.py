"""Qt UI constants used across widgets."""

WINDOW_TITLE: str = "AssessQt"

START_BUTTON: str = "Start"
PREVIOUS_BUTTON: str = "Previous"
NEXT_BUTTON: str = "Next"
FINISH_BUTTON: str = "Finish"
RETRY_BUTTON: str = "Retry"

STATE_NOT_YET_OPEN: str = "Opens in {countdown}"
STATE_OPEN: str = "Available now"
STATE_OPEN_OVERRIDE: str = "Reopened for you by your instructor"
STATE_CLOSED_EXPIRED: str = "The availability window has closed."
STATE_DISABLED: str = "This assessment is not active."
STATE_COMPLETED: str = "You have already completed this assessment."

CONFIRM_START_TITLE: str = "Start assessment"
CONFIRM_START_TEMPLATE: str = (
    "You will have {duration} to answer {count} question(s). "
    "Once started the timer cannot be paused. Start now?"
)

STARTING_MESSAGE: str = "Starting attempt…"
FINALIZING_MESSAGE: str = "Submitting your answers…"
TIMED_OUT_MESSAGE: str = "Time is up. Your answers were saved and submitted."
COMPLETED_MESSAGE: str = "Assessment submitted."
ERROR_TITLE: str = "Something went wrong"
NOT_FOUND_MESSAGE: str = "This assessment is no longer available."
RETRY_HINT: str = "Your answers are kept locally. Press Retry to submit them again."
