MIN_TO_START = 2
DEFAULT_CATEGORIES = 8

MIN_CAPACITY = 2
MAX_CAPACITY = 8

CODE_MAX_LEN = 6
NAME_MAX_LEN = 32
LETTER_MAX_LEN = 2
ANSWER_MAX_LEN = 64
CHAT_MAX_LEN = 240

DEFAULT_ROUND_SECONDS = 60
LANGUAGES = {"ar", "en"}
DEFAULT_LANG = "ar"

# Token bucket applied to every inbound frame of a connection
RATE_CAPACITY = 10.0
RATE_REFILL_PER_SEC = 5.0

# Upper bound on one outbound frame; a slower peer is treated as gone
SEND_TIMEOUT = 0.5

ROLE_HOST = "host"
ROLE_GUEST = "guest"

__all__ = [
    "MIN_TO_START",
    "DEFAULT_CATEGORIES",
    "MIN_CAPACITY",
    "MAX_CAPACITY",
    "CODE_MAX_LEN",
    "NAME_MAX_LEN",
    "LETTER_MAX_LEN",
    "ANSWER_MAX_LEN",
    "CHAT_MAX_LEN",
    "DEFAULT_ROUND_SECONDS",
    "LANGUAGES",
    "DEFAULT_LANG",
    "RATE_CAPACITY",
    "RATE_REFILL_PER_SEC",
    "SEND_TIMEOUT",
    "ROLE_HOST",
    "ROLE_GUEST",
]
