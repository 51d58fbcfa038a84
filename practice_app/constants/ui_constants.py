"""User-facing messages emitted by the engine for the UI layer to display."""

SUBMIT_FAILED_MESSAGE: str = "Failed to submit quiz"
NOT_AUTHENTICATED_MESSAGE: str = "User not authenticated"
ATTEMPT_LIMIT_MESSAGE: str = "No attempts remaining for this quiz."
NO_CUES_MESSAGE: str = "No transcript cues found."
NO_QUESTIONS_MESSAGE: str = "No questions found for this quiz."
NO_TIME_LIMIT_LABEL: str = "No time limit"

GREAT_TIER_MESSAGE: str = "Great job!"
GOOD_TIER_MESSAGE: str = "Good effort! Keep going"
KEEP_PRACTICING_TIER_MESSAGE: str = "Keep practicing!"
