"""Default system prompts."""

CONVERSATION_SYSTEM_PROMPT = (
    "You are a helpful and knowledgeable AI assistant. Provide clear, concise, "
    "and accurate responses. When appropriate, ask clarifying questions or "
    "provide examples."
)

# Used by one-shot prompts that don't supply their own system message.
ONE_SHOT_SYSTEM_PROMPT = "You are a senior application security engineer."
