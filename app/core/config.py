import os
from dotenv import load_dotenv

load_dotenv()

APP_ENV = os.getenv("APP_ENV", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.0-flash-exp")
GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
HTTP_TIMEOUT = int(os.getenv("HTTP_TIMEOUT", "30"))
# A completion is a single request/response unless explicitly configured otherwise
MAX_RETRIES = int(os.getenv("MAX_RETRIES", "1"))
RETRY_DELAY = int(os.getenv("RETRY_DELAY", "2"))

MONGODB_URL = os.getenv("MONGODB_URL", "mongodb://localhost:27017")
DATABASE_NAME = os.getenv("DATABASE_NAME", "agriai")

OPENWEATHER_API_KEY = os.getenv("OPENWEATHER_API_KEY")
OPENWEATHER_URL = os.getenv("OPENWEATHER_URL", "https://api.openweathermap.org/data/2.5/weather")

SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "agriai_session")
SESSION_MAX_AGE_DAYS = int(os.getenv("SESSION_MAX_AGE_DAYS", "7"))
SESSION_COOKIE_SECURE = APP_ENV == "production"

# "json" asks the model for strict JSON, "text" for the older labeled-line format.
# The parsers accept both regardless of this setting.
PROMPT_RESPONSE_FORMAT = os.getenv("PROMPT_RESPONSE_FORMAT", "json")

# kg of feed per animal per ration percent, used by the text feeding-plan parser
FEED_KG_PER_PERCENT = float(os.getenv("FEED_KG_PER_PERCENT", "0.15"))

CHAT_HISTORY_LIMIT = int(os.getenv("CHAT_HISTORY_LIMIT", "50"))

FIELD_CATEGORIES = ("fertilizer", "soil", "pesticides")
