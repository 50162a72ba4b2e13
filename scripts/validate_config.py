import argparse
from pathlib import Path

from dotenv import dotenv_values

_log_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def truthy(v: str) -> bool:
    return str(v or "").strip().lower() in {"1", "true", "yes", "on"}


def validate(env: dict, strict: bool = False) -> list[str]:
    errors = []

    provider = (env.get("LLM_PROVIDER") or "openai").strip().lower()
    if provider not in {"openai", "hf"}:
        errors.append("LLM_PROVIDER must be 'openai' or 'hf'.")
    elif provider == "openai" and not (env.get("OPENAI_API_KEY") or "").strip():
        errors.append("OPENAI_API_KEY must be set when LLM_PROVIDER=openai.")
    elif provider == "hf" and not (env.get("HUGGINGFACE_API_KEY") or "").strip():
        errors.append("HUGGINGFACE_API_KEY must be set when LLM_PROVIDER=hf.")

    for name in ["LLM_TIMEOUT_SECONDS", "LLM_MAX_TOKENS", "MAX_QUERY_BYTES", "RATE_LIMIT_WINDOW_SEC", "RATE_LIMIT_QUERY_PER_WINDOW"]:
        value = (env.get(name) or "").strip()
        if not value:
            continue
        try:
            if int(value) <= 0:
                errors.append(f"{name} must be a positive integer.")
        except ValueError:
            errors.append(f"{name} must be an integer.")

    temperature = (env.get("LLM_TEMPERATURE") or "").strip()
    if temperature:
        try:
            if not 0 <= float(temperature) <= 2:
                errors.append("LLM_TEMPERATURE must be between 0 and 2.")
        except ValueError:
            errors.append("LLM_TEMPERATURE must be a number.")

    log_level = (env.get("LOG_LEVEL") or "INFO").strip().upper()
    if log_level not in _log_levels:
        errors.append(f"LOG_LEVEL must be one of {', '.join(sorted(_log_levels))}.")

    profile_path = (env.get("PROFILE_PATH") or "").strip()
    if profile_path and not Path(profile_path).exists():
        errors.append(f"PROFILE_PATH does not exist: {profile_path}")

    if strict:
        if not truthy(env.get("DISABLE_DOCS", "true")):
            errors.append("DISABLE_DOCS must be true in strict mode.")
        cors = (env.get("CORS_ORIGINS") or "").strip()
        origins = [x.strip() for x in cors.split(",") if x.strip()]
        if not origins:
            errors.append("CORS_ORIGINS must be set in strict mode.")
        elif "*" in origins:
            errors.append("CORS_ORIGINS must not include '*'.")
        if truthy(env.get("API_KEY_REQUIRED", "false")) and len((env.get("APP_API_KEY") or "").strip()) < 24:
            errors.append("APP_API_KEY must be at least 24 chars when API_KEY_REQUIRED is true.")
        if truthy(env.get("TRUST_X_FORWARDED_FOR", "false")):
            errors.append("TRUST_X_FORWARDED_FOR should be false unless behind trusted proxy.")

    return errors


def main() -> int:
    parser = argparse.ArgumentParser(description="Validate portfolio chat env settings.")
    parser.add_argument("--env-file", default=".env", help="Path to env file (default: .env)")
    parser.add_argument("--strict", action="store_true", help="Enable production checks")
    args = parser.parse_args()

    env_path = Path(args.env_file)
    if not env_path.exists():
        print(f"Env file not found: {env_path}")
        return 1
    errors = validate(dotenv_values(env_path), strict=args.strict)
    if errors:
        print("Config validation failed:")
        for e in errors:
            print(f"- {e}")
        return 1
    print("Config validation passed.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
