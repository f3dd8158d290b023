import os

JWT_SECRET = os.getenv("JWT_SECRET", "")
ACCESS_TOKEN_TTL_MINUTES = int(os.getenv("ACCESS_TOKEN_TTL_MINUTES", "60"))
DEV_MODE = os.getenv("DEV_MODE", "false").lower() == "true"

ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv("ALLOWED_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(",")
    if origin.strip()
]

MAX_CUSTOM_QUESTIONS = int(os.getenv("MAX_CUSTOM_QUESTIONS", "10"))
MAX_QUESTION_LENGTH = int(os.getenv("MAX_QUESTION_LENGTH", "500"))
MAX_ANSWER_LENGTH = int(os.getenv("MAX_ANSWER_LENGTH", "5000"))
MAX_REQUEST_MESSAGE_LENGTH = int(os.getenv("MAX_REQUEST_MESSAGE_LENGTH", "1000"))
MAX_REJECTION_REASON_LENGTH = int(os.getenv("MAX_REJECTION_REASON_LENGTH", "500"))
MAX_CHAT_MESSAGE_LENGTH = int(os.getenv("MAX_CHAT_MESSAGE_LENGTH", "2000"))
NOTIFICATIONS_PAGE_MAX = int(os.getenv("NOTIFICATIONS_PAGE_MAX", "50"))
CONVERSATION_PAGE_MAX = int(os.getenv("CONVERSATION_PAGE_MAX", "200"))

RL_REQUEST_CREATE_LIMIT = int(os.getenv("RL_REQUEST_CREATE_LIMIT", "30"))
RL_QUESTIONNAIRE_SEND_LIMIT = int(os.getenv("RL_QUESTIONNAIRE_SEND_LIMIT", "30"))
RL_MESSAGE_SEND_LIMIT = int(os.getenv("RL_MESSAGE_SEND_LIMIT", "120"))
RL_WINDOW_SECONDS = int(os.getenv("RL_WINDOW_SECONDS", "60"))
