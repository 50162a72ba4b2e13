import logging

from answer_tree import build_tree_from_answer
from answers import build_intro_tree, build_summary_tree
from extractor import extract_spec, looks_like_json

logger = logging.getLogger("portfolio_chat.conversation")

QUICK_PROMPTS = [
    "What are your most recent roles?",
    "What tech stack do you focus on?",
    "How can I get in contact with Arthur?",
    "How do you use AI in your workflow?",
]

FOLLOW_UP_BANK = {
    "general": [
        "What industries have you worked in?",
        "What are your strongest frontend strengths?",
        "How can I get in contact with Arthur?",
    ],
    "experience": [
        "What was your impact at Travel Syndicate Technology?",
        "What did you do at Insight Rx?",
        "What kind of teams have you led?",
    ],
    "skills": [
        "What is your preferred tech stack?",
        "What backend experience do you have?",
        "Which tools do you use for testing?",
    ],
    "contact": [
        "Where can I find your GitHub?",
        "Are you open to new opportunities?",
        "What is the best way to reach you?",
    ],
}


def get_follow_ups(question):
    q = (question or "").lower()
    if "contact" in q or "email" in q:
        return list(FOLLOW_UP_BANK["contact"])
    if any(word in q for word in ["experience", "roles", "company"]):
        return list(FOLLOW_UP_BANK["experience"])
    if any(word in q for word in ["stack", "skills", "tech"]):
        return list(FOLLOW_UP_BANK["skills"])
    return list(FOLLOW_UP_BANK["general"])


class MessageStream:
    """Accumulated text and latest extracted spec for one in-flight answer."""

    def __init__(self, prompt):
        self.prompt = prompt
        self.buffer = ""
        self.spec = None
        self.source = None
        self.done = False
        self.error = None

    def append(self, chunk):
        if self.done or not chunk:
            return self.spec
        self.buffer += chunk
        spec = extract_spec(self.buffer)
        if spec is not None:
            # Each successful parse supersedes the previous tree wholesale.
            self.spec = spec
            self.source = "stream"
        return self.spec

    def finish(self):
        if self.done:
            return self.spec
        self.done = True
        spec = extract_spec(self.buffer, stream_done=True)
        if spec is not None:
            self.spec = spec
            self.source = "stream"
            return self.spec
        # Trailing prose after a complete tree keeps the streamed tree.
        if self.spec is not None:
            return self.spec
        if self.buffer.strip():
            self.spec = build_tree_from_answer(self.prompt, self.buffer)
            self.source = "fallback"
        else:
            self.spec = build_summary_tree()
            self.source = "canned"
        return self.spec

    def fail(self, exc):
        self.done = True
        self.error = exc
        logger.warning("message_stream_failed prompt_len=%s error=%s", len(self.prompt or ""), exc)
        if self.spec is None:
            self.spec = build_summary_tree()
            self.source = "canned"
        return self.spec


class ChatMessage:
    def __init__(self, message_id, role, text=None, spec=None):
        self.id = message_id
        self.role = role
        self.text = text
        self.spec = spec

    def to_dict(self):
        return {"id": self.id, "role": self.role, "text": self.text, "spec": self.spec}


class Conversation:
    """Ordered chat transcript; each assistant message owns its own stream state."""

    def __init__(self, intro=True):
        self.messages = []
        self.follow_ups = []
        self._counter = 0
        if intro:
            self.messages.append(ChatMessage("intro", "assistant", spec=build_intro_tree()))

    def _next_id(self, role):
        self._counter += 1
        return f"{role}-{self._counter}"

    def ask(self, prompt, chunks):
        """Drive one question through `chunks` (an iterable of text pieces) and return the assistant message."""
        trimmed = (prompt or "").strip()
        if not trimmed:
            return None

        self.follow_ups = []
        self.messages.append(ChatMessage(self._next_id("user"), "user", text=trimmed))
        reply = ChatMessage(self._next_id("assistant"), "assistant", text="Thinking...")
        self.messages.append(reply)

        stream = MessageStream(trimmed)
        try:
            for chunk in chunks:
                stream.append(chunk)
                reply.text = "Thinking..." if looks_like_json(stream.buffer) else stream.buffer
            spec = stream.finish()
        except Exception as exc:
            spec = stream.fail(exc)

        reply.text = None
        reply.spec = spec
        self.follow_ups = get_follow_ups(trimmed)
        return reply
