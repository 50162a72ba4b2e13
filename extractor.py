import json
import logging
import re

from spec_normalizer import is_flat_shape, is_nested_shape, nested_to_flat, normalize_spec

logger = logging.getLogger("portfolio_chat.extractor")

# Fences only count at the start of a line; inline backticks inside JSON strings are content.
_closed_fence_re = re.compile(r"^[ \t]*```[ \t]*(?:json)?[ \t]*\r?\n(.*?)^[ \t]*```", re.S | re.M | re.I)
_open_fence_re = re.compile(r"^[ \t]*```[ \t]*(?:json)?[ \t]*\r?\n(.*)\Z", re.S | re.M | re.I)


def _json_candidate(text):
    """Return the text worth handing to json.loads, or "" when the buffer is not JSON-bearing."""
    match = _closed_fence_re.search(text)
    if match is None:
        # Fence opened but the stream has not delivered the closing backticks yet.
        match = _open_fence_re.search(text)
    if match is not None:
        return match.group(1).strip()
    if text.startswith("{"):
        return text
    return ""


def looks_like_json(text):
    return bool(_json_candidate((text or "").strip()))


def classify_shape(value):
    if is_flat_shape(value):
        return "flat"
    if is_nested_shape(value):
        return "nested"
    return None


def extract_spec(text, stream_done=False):
    """Best-effort spec from the full text accumulated so far for one response.

    Pure function of its input: safe to call on every stream tick. Returns None
    while nothing usable has arrived. Failures are only logged once the stream
    has ended, since a truncated JSON document is the normal mid-stream state.
    """
    cleaned = (text or "").strip()
    if not cleaned:
        return None

    candidate = _json_candidate(cleaned)
    if not candidate:
        return None

    try:
        value = json.loads(candidate)
    except ValueError as exc:
        if stream_done:
            logger.warning("extract_parse_failed chars=%s error=%s", len(candidate), exc)
        return None

    shape = classify_shape(value)
    if shape == "flat":
        spec = normalize_spec(value)
    elif shape == "nested":
        spec = normalize_spec(nested_to_flat(value))
    else:
        if stream_done:
            logger.warning("extract_unrecognized_shape type=%s", type(value).__name__)
        return None

    if spec is None and stream_done:
        logger.warning("extract_unrepresentable shape=%s", shape)
    return spec
