import os
import time
import json
import logging
import secrets
import uuid
from collections import defaultdict, deque
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, FileResponse, StreamingResponse

from answers import build_intro_tree, build_summary_tree
from conversation import QUICK_PROMPTS
from engine import LLMError, PortfolioEngine
from extractor import extract_spec
from render import render_message
import uvicorn

load_dotenv()

DISABLE_DOCS = (os.getenv("DISABLE_DOCS", "true").strip().lower() in {"1", "true", "yes"})
app = FastAPI(
    docs_url=None if DISABLE_DOCS else "/docs",
    redoc_url=None if DISABLE_DOCS else "/redoc",
    openapi_url=None if DISABLE_DOCS else "/openapi.json",
)

LOG_LEVEL = (os.getenv("LOG_LEVEL", "INFO") or "INFO").upper()
logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s %(message)s")
logger = logging.getLogger("portfolio_chat.api")

cors_env = os.getenv("CORS_ORIGINS", "").strip()
if cors_env:
    ALLOW_ORIGINS = [x.strip() for x in cors_env.split(",") if x.strip()]
else:
    ALLOW_ORIGINS = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:8001",
        "http://127.0.0.1:8001",
    ]

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOW_ORIGINS,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "X-API-Key"],
)

_engine = PortfolioEngine()

API_KEY = os.getenv("APP_API_KEY", "").strip()
API_KEY_REQUIRED = (os.getenv("API_KEY_REQUIRED", "false").strip().lower() in {"1", "true", "yes"})
MAX_QUERY_BYTES = int(os.getenv("MAX_QUERY_BYTES", "20000"))  # 20KB default
RATE_LIMIT_WINDOW_SEC = int(os.getenv("RATE_LIMIT_WINDOW_SEC", "60"))
RATE_LIMIT_QUERY_PER_WINDOW = int(os.getenv("RATE_LIMIT_QUERY_PER_WINDOW", "30"))
TRUST_X_FORWARDED_FOR = (os.getenv("TRUST_X_FORWARDED_FOR", "false").strip().lower() in {"1", "true", "yes"})

_rate_buckets = defaultdict(deque)
_index_html = Path(__file__).resolve().with_name("index.html")


def _client_ip(request: Request):
    if TRUST_X_FORWARDED_FOR:
        xff = request.headers.get("x-forwarded-for", "")
        if xff:
            return xff.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def _check_rate_limit(bucket_key: str, limit: int):
    now = time.time()
    q = _rate_buckets[bucket_key]
    while q and (now - q[0]) > RATE_LIMIT_WINDOW_SEC:
        q.popleft()
    if len(q) >= limit:
        return False
    q.append(now)
    return True


def _require_api_key(request: Request):
    if not API_KEY_REQUIRED:
        return None
    if not API_KEY:
        return JSONResponse(status_code=500, content={"error": "Server auth misconfiguration."})
    token = (request.headers.get("X-API-Key") or "").strip()
    if not secrets.compare_digest(token, API_KEY):
        return JSONResponse(status_code=401, content={"error": "Unauthorized"})
    return None


async def _read_json_body(request: Request):
    """Returns (data, error_response). The body must be a JSON object within MAX_QUERY_BYTES."""
    raw = await request.body()
    if len(raw) > MAX_QUERY_BYTES:
        return None, JSONResponse(status_code=413, content={"error": "Payload too large."})
    try:
        data = json.loads(raw.decode("utf-8", errors="strict"))
    except ValueError:
        return None, JSONResponse(status_code=400, content={"error": "Invalid JSON payload."})
    if not isinstance(data, dict):
        return None, JSONResponse(status_code=400, content={"error": "Invalid JSON payload."})
    return data, None


async def _read_prompt(request: Request):
    """Shared guard for question endpoints. Returns (prompt, error_response)."""
    auth_err = _require_api_key(request)
    if auth_err:
        return None, auth_err
    if not _check_rate_limit(f"query:{_client_ip(request)}", RATE_LIMIT_QUERY_PER_WINDOW):
        return None, JSONResponse(status_code=429, content={"error": "Rate limit exceeded. Try again shortly."})
    data, err = await _read_json_body(request)
    if err:
        return None, err
    prompt = data.get("prompt")
    if not isinstance(prompt, str) or not prompt.strip():
        return None, JSONResponse(status_code=400, content={"error": "Prompt is required"})
    return prompt.strip(), None


@app.middleware("http")
async def add_request_context(request: Request, call_next):
    request_id = (request.headers.get("X-Request-ID") or str(uuid.uuid4())).strip()[:128]
    request.state.request_id = request_id
    start = time.time()
    try:
        response = await call_next(request)
    except Exception:
        logger.exception(
            "unhandled_exception request_id=%s method=%s path=%s ip=%s",
            request_id,
            request.method,
            request.url.path,
            _client_ip(request),
        )
        response = JSONResponse(status_code=500, content={"error": "Request processing failed.", "request_id": request_id})
    elapsed_ms = int((time.time() - start) * 1000)
    response.headers["X-Request-ID"] = request_id
    response.headers["X-Process-Time-Ms"] = str(elapsed_ms)
    response.headers["X-Content-Type-Options"] = "nosniff"
    logger.info(
        "request request_id=%s method=%s path=%s status=%s duration_ms=%s ip=%s",
        request_id,
        request.method,
        request.url.path,
        getattr(response, "status_code", "?"),
        elapsed_ms,
        _client_ip(request),
    )
    return response


@app.get("/health")
async def health():
    return {"ok": True}


@app.get("/status")
async def get_status(request: Request):
    auth_err = _require_api_key(request)
    if auth_err:
        return auth_err
    return _engine.get_status_info()


@app.get("/intro")
async def intro():
    return {"spec": build_intro_tree(), "quick_prompts": QUICK_PROMPTS}


@app.get("/")
async def serve_ui_root():
    if _index_html.exists():
        return FileResponse(str(_index_html))
    return JSONResponse(status_code=404, content={"detail": "UI file not found"})


def _relay(first_chunk, chunks, request_id):
    yield first_chunk
    try:
        for chunk in chunks:
            yield chunk
    except LLMError as exc:
        # Headers are already sent; the client sees a short stream and falls back.
        logger.warning("generate_stream_interrupted request_id=%s error=%s", request_id, exc)


@app.post("/generate")
async def generate(request: Request):
    prompt, err = await _read_prompt(request)
    if err:
        return err

    req_id = getattr(request.state, "request_id", "-")
    chunks = _engine.stream_answer(prompt)
    try:
        first_chunk = await run_in_threadpool(next, chunks, "")
    except LLMError as exc:
        logger.error("generate_failed request_id=%s error=%s", req_id, exc)
        return JSONResponse(status_code=500, content={"error": "Generation failed.", "spec": build_summary_tree()})

    return StreamingResponse(
        _relay(first_chunk, chunks, req_id),
        media_type="text/plain; charset=utf-8",
        headers={"Cache-Control": "no-cache, no-transform"},
    )


@app.post("/answer")
async def answer(request: Request):
    prompt, err = await _read_prompt(request)
    if err:
        return err
    try:
        result = await run_in_threadpool(_engine.answer, prompt)
    except Exception:
        req_id = getattr(request.state, "request_id", "-")
        logger.exception("answer_failed request_id=%s", req_id)
        return JSONResponse(
            status_code=500,
            content={"error": "Request processing failed.", "spec": build_summary_tree(), "request_id": req_id},
        )
    result["html"] = render_message(result["spec"])
    return result


@app.post("/extract")
async def extract(request: Request):
    data, err = await _read_json_body(request)
    if err:
        return err
    text = data.get("text")
    if not isinstance(text, str):
        return JSONResponse(status_code=400, content={"error": "Field 'text' must be a string."})
    return {"spec": extract_spec(text, stream_done=bool(data.get("done", False)))}


@app.post("/render")
async def render(request: Request):
    data, err = await _read_json_body(request)
    if err:
        return err
    return {"html": render_message(data.get("spec"))}


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8001")))
