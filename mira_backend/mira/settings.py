import os
from dotenv import load_dotenv
import logging

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# mira_backend/.env holds the OpenAI key when running locally
ENV_FILE = os.path.join(os.path.dirname(__file__), "..", ".env")
if load_dotenv(ENV_FILE):
    logger.info(f"Read settings from {os.path.abspath(ENV_FILE)}")

OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
OPENAI_TTS_MODEL = os.getenv("OPENAI_TTS_MODEL", "gpt-4o-mini-tts")
OPENAI_SPEECH_URL = os.getenv("OPENAI_SPEECH_URL", "https://api.openai.com/v1/audio/speech")

# Where the front end sends its synthesis requests (the proxy in app.py)
TTS_URL = os.getenv("MIRA_TTS_URL", "http://localhost:8000/api/tts")
TTS_TIMEOUT_S = float(os.getenv("MIRA_TTS_TIMEOUT_S", "60"))
DEFAULT_VOICE = os.getenv("MIRA_DEFAULT_VOICE", "alloy")
AUDIO_FORMAT = os.getenv("MIRA_AUDIO_FORMAT", "mp3")

# Script persistence: Vercel KV when configured, otherwise a local JSON file
KV_REST_API_URL = os.getenv("KV_REST_API_URL", "").strip()
KV_REST_API_TOKEN = os.getenv("KV_REST_API_TOKEN", "").strip()
STORE_PATH = os.getenv("MIRA_STORE_PATH", os.path.join(os.path.expanduser("~"), ".mira", "store.json"))
SCRIPT_KEY = "scriptItems"

# Taps landing this soon after the menu closes are ignored
SUPPRESS_MS = int(os.getenv("MIRA_SUPPRESS_MS", "250"))

# Browsers allowed to call the proxy; any origin unless ALLOWED_ORIGINS lists some
ALLOWED_ORIGINS = [o.strip() for o in os.getenv("ALLOWED_ORIGINS", "").split(",") if o.strip()] or ["*"]

def has_api_key() -> bool:
    if not os.getenv("OPENAI_API_KEY", ""):
        logger.warning("Missing API key: OPENAI_API_KEY")
        return False
    return True
