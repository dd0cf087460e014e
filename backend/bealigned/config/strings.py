# /bealigned/config/strings.py

# This file contains user-facing strings produced by the engine itself,
# making them easy to update without changing application logic.

GENERATION_UNAVAILABLE = (
    "I'm having trouble gathering my thoughts right now, so I haven't moved us forward. "
    "Could you share that again in a moment?"
)

EMPTY_CONTEXT = "Nothing shared yet."

EMPTY_HISTORY = "(This is the start of the conversation.)"

# Error codes reported in TurnResult.error
ERROR_GENERATION_UNAVAILABLE = "generation_unavailable"
