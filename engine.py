import json
import logging
import os

import requests
from dotenv import load_dotenv
from huggingface_hub import InferenceClient

from answers import build_answer_tree
from catalog import catalog_prompt
from conversation import MessageStream, get_follow_ups
from profile_data import PROFILE

logger = logging.getLogger("portfolio_chat.engine")


class LLMError(RuntimeError):
    """Upstream model call could not be started or broke mid-stream."""


class PortfolioEngine:
    def __init__(self, profile=None, client=None):
        load_dotenv()

        self.profile = profile if profile is not None else PROFILE
        self.api_key = (os.getenv("HUGGINGFACE_API_KEY") or "").strip()
        self.model_name = os.getenv("HF_MODEL_NAME", "mistralai/Mistral-7B-Instruct-v0.2")
        self.openai_api_key = (os.getenv("OPENAI_API_KEY") or "").strip()
        self.openai_model = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
        self.openai_base_url = (os.getenv("OPENAI_BASE_URL") or "https://api.openai.com/v1").rstrip("/")
        self.llm_provider = (os.getenv("LLM_PROVIDER") or "openai").strip().lower()
        if self.llm_provider not in {"hf", "openai"}:
            self.llm_provider = "openai"

        self.timeout_seconds = int(os.getenv("LLM_TIMEOUT_SECONDS", "90"))
        self.max_tokens = int(os.getenv("LLM_MAX_TOKENS", "1200"))
        self.temperature = float(os.getenv("LLM_TEMPERATURE", "0.25"))
        if client is not None:
            self.client = client
        else:
            self.client = (
                InferenceClient(provider="auto", api_key=self.api_key, timeout=self.timeout_seconds)
                if self.api_key
                else None
            )
        self.is_llm_connected = bool(
            self.openai_api_key if self.llm_provider == "openai" else (self.api_key or client is not None)
        )
        self.system_prompt = self._build_system_prompt()

    def _source_label(self):
        return f"OpenAI/{self.openai_model}" if self.llm_provider == "openai" else f"HuggingFace/{self.model_name}"

    def get_status_info(self):
        return {
            "llm": "Connected" if self.is_llm_connected else "Disconnected",
            "ready": self.is_llm_connected,
            "provider": self.llm_provider,
            "source": self._source_label(),
        }

    def _build_system_prompt(self):
        name = self.profile.get("name", "the candidate")
        profile_context = json.dumps(self.profile, indent=2, ensure_ascii=False)
        return (
            f"You are an assistant that answers questions about {name}.\n"
            "Use only the provided profile data. Be specific and concrete. Avoid generic hiring\n"
            "fluff or templated language. If asked about fit for a team, answer directly with\n"
            "clear reasons tied to the resume and mention any missing info you'd want.\n"
            "If the question asks for preferences not stated, infer only from the resume and\n"
            'say "based on the resume" rather than guessing.\n\n'
            f"{catalog_prompt()}\n\n"
            f"PROFILE DATA:\n{profile_context}\n"
        )

    def build_messages(self, prompt):
        return [
            {"role": "system", "content": self.system_prompt},
            {
                "role": "user",
                "content": (
                    f"User question: {prompt}\n\n"
                    "Answer with the JSON UI spec described above: a short summary Text (2-4 sentences) "
                    "and a List of evidence bullets if helpful.\n"
                    "If you need more info to answer, ask 1 clarifying question as plain text instead."
                ),
            },
        ]

    def _stream_hf(self, prompt):
        if self.client is None:
            raise LLMError("Missing HUGGINGFACE_API_KEY in .env")
        try:
            stream = self.client.chat.completions.create(
                model=self.model_name,
                messages=self.build_messages(prompt),
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                stream=True,
            )
            for chunk in stream:
                choices = getattr(chunk, "choices", None) or []
                if not choices:
                    continue
                delta = getattr(choices[0].delta, "content", None)
                if delta:
                    yield delta
        except LLMError:
            raise
        except Exception as exc:
            raise LLMError(f"HuggingFace stream failed: {exc}") from exc

    def _stream_openai(self, prompt):
        if not self.openai_api_key:
            raise LLMError("Missing OPENAI_API_KEY in .env")

        url = f"{self.openai_base_url}/chat/completions"
        headers = {
            "Authorization": f"Bearer {self.openai_api_key}",
            "Content-Type": "application/json",
        }
        payload = {
            "model": self.openai_model,
            "messages": self.build_messages(prompt),
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "stream": True,
        }
        try:
            response = requests.post(url, headers=headers, json=payload, stream=True, timeout=self.timeout_seconds)
        except requests.RequestException as exc:
            raise LLMError(f"OpenAI request failed: {exc}") from exc

        with response:
            if response.status_code >= 400:
                try:
                    message = response.json().get("error", {}).get("message")
                except ValueError:
                    message = None
                raise LLMError(message or f"HTTP {response.status_code}")

            try:
                for raw_line in response.iter_lines(decode_unicode=True):
                    if not raw_line or not raw_line.startswith("data:"):
                        continue
                    data = raw_line[len("data:"):].strip()
                    if data == "[DONE]":
                        break
                    try:
                        event = json.loads(data)
                    except ValueError:
                        logger.debug("openai_stream_skip_line chars=%s", len(data))
                        continue
                    choices = event.get("choices") or []
                    if not choices:
                        continue
                    delta = (choices[0].get("delta") or {}).get("content")
                    if delta:
                        yield delta
            except requests.RequestException as exc:
                raise LLMError(f"OpenAI stream interrupted: {exc}") from exc

    def stream_answer(self, prompt):
        """Yield text chunks from the configured provider, in arrival order.

        Raises LLMError (when iterated) if the call cannot start or breaks mid-stream.
        """
        if self.llm_provider == "openai":
            return self._stream_openai(prompt)
        return self._stream_hf(prompt)

    def answer(self, prompt):
        """Consume one full answer and resolve it to a spec.

        Returns {"spec", "source", "follow_ups"}. Without a configured model the
        answer is a canned tree routed from the question keywords.
        """
        prompt = (prompt or "").strip()
        if not self.is_llm_connected:
            return {
                "spec": build_answer_tree(prompt, self.profile),
                "source": "canned",
                "follow_ups": get_follow_ups(prompt),
            }

        stream = MessageStream(prompt)
        try:
            for chunk in self.stream_answer(prompt):
                stream.append(chunk)
            stream.finish()
        except LLMError as exc:
            stream.fail(exc)
        logger.info("answer_resolved source=%s chars=%s provider=%s", stream.source, len(stream.buffer), self.llm_provider)
        return {"spec": stream.spec, "source": stream.source, "follow_ups": get_follow_ups(prompt)}
