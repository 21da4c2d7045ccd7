import math
import logging
from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse, Response, PlainTextResponse
from fastapi.middleware.cors import CORSMiddleware
from typing import List, Optional

from .settings import has_api_key, ALLOWED_ORIGINS, SCRIPT_KEY
from .models import SpeechRequest, Step
from .openai_tts import tts_to_bytes, MissingKeyError, SynthesisError
from .kv_storage import KVStorage
from .script_book import parse_steps, dump_steps, duplicate_ids

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(title="Talk to Mira Backend")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS or ["*"],
    allow_credentials=True,
    allow_methods=["POST", "GET", "PUT", "OPTIONS"],
    allow_headers=["*"],
)

NO_STORE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, max-age=0",
    "Pragma": "no-cache",
    "Expires": "0",
}

store = KVStorage()

@app.get("/health")
def health():
    key_ok = has_api_key()
    logger.info(f"Health check: API key present = {key_ok}")
    return {"ok": True, "has_key": key_ok}

@app.post("/api/tts")
async def tts(req: Optional[SpeechRequest] = None):
    if req is None or not req.text or not req.text.strip():
        return JSONResponse({"error": "text required"}, status_code=400)

    try:
        audio = await tts_to_bytes(req.text, voice=req.voice, format=req.format)
    except MissingKeyError as e:
        logger.error(str(e))
        return JSONResponse({"error": "missing OPENAI_API_KEY on server"}, status_code=500)
    except SynthesisError as e:
        return PlainTextResponse(e.message or "OpenAI error", status_code=e.status)
    except Exception as e:
        logger.error(f"[api/tts] error: {e!r}")
        return JSONResponse({"error": "server error"}, status_code=500)

    return Response(content=audio, media_type=f"audio/{req.format}", headers=NO_STORE_HEADERS)

@app.get("/api/script")
async def get_script():
    steps = parse_steps(await store.get(SCRIPT_KEY))
    if steps is None:
        steps = [Step()]
    # JSON has no NaN; unparseable delays go out as 0
    return [{**s.model_dump(), "delay": s.delay if math.isfinite(s.delay) else 0} for s in steps]

@app.put("/api/script")
async def put_script(steps: List[Step]):
    dupes = duplicate_ids(steps)
    if dupes:
        raise HTTPException(400, f"duplicate step ids: {', '.join(dupes)}")
    if not await store.set(SCRIPT_KEY, dump_steps(steps)):
        raise HTTPException(500, "failed to store script")
    return {"ok": True, "count": len(steps)}
