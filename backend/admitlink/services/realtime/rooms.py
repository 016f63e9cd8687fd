"""Room names are pure functions of entity ids."""

USER_ROOM_PREFIX = "user:"
CONVERSATION_ROOM_PREFIX = "conversation:"


def room_for_user(user_id: str) -> str:
    return f"{USER_ROOM_PREFIX}{user_id}"


def room_for_conversation(conversation_id: str) -> str:
    return f"{CONVERSATION_ROOM_PREFIX}{conversation_id}"
