import json
import logging
import os
from pathlib import Path

logger = logging.getLogger("portfolio_chat.profile")

_default_profile_path = Path(__file__).resolve().with_name("profile.json")


def load_profile(path=None):
    """Read the read-only profile record (bio, experience, skills, education, contact, interests)."""
    profile_path = Path(path or os.getenv("PROFILE_PATH") or _default_profile_path)
    text = profile_path.read_text(encoding="utf-8")
    profile = json.loads(text)
    if not isinstance(profile, dict):
        raise ValueError(f"Profile file must hold a JSON object: {profile_path}")
    logger.debug("profile_loaded path=%s sections=%s", profile_path, len(profile))
    return profile


PROFILE = load_profile()
