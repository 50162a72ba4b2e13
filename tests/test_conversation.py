from conversation import Conversation, MessageStream, get_follow_ups

FLAT = '{"root":"c","elements":{"c":{"type":"Card","props":{"title":"Skills"},"children":[]}}}'


def _types(spec):
    return [spec["elements"][key]["type"] for key in spec["elements"][spec["root"]].get("children") or []]


def test_stream_produces_spec_once_json_completes():
    stream = MessageStream("Skills?")
    assert stream.append(FLAT[:20]) is None
    spec = stream.append(FLAT[20:])
    assert spec["root"] == "c"
    assert stream.source == "stream"
    assert stream.finish() == spec
    assert stream.source == "stream"


def test_each_parse_supersedes_previous_tree():
    stream = MessageStream("q")
    first = stream.append(FLAT)
    second = stream.append(" ")
    assert second == first
    assert second is not first


def test_prose_falls_back_at_stream_end():
    stream = MessageStream("Skills?")
    for chunk in ["Line one.\n", "- point A\n", "- point B"]:
        assert stream.append(chunk) is None
    spec = stream.finish()
    assert stream.source == "fallback"
    assert _types(spec) == ["Heading", "Text", "List"]


def test_trailing_prose_keeps_streamed_tree():
    stream = MessageStream("q")
    assert stream.append(FLAT)["root"] == "c"
    stream.append("\n\nLet me know if you want more detail.")
    spec = stream.finish()
    assert stream.source == "stream"
    assert spec["root"] == "c"
    assert spec["elements"]["c"]["props"] == {"title": "Skills"}


def test_empty_stream_gets_summary_tree():
    stream = MessageStream("q")
    spec = stream.finish()
    assert stream.source == "canned"
    assert spec["elements"][spec["root"]]["props"]["title"] == "Quick summary"


def test_failed_stream_keeps_extracted_tree():
    stream = MessageStream("q")
    stream.append(FLAT)
    spec = stream.fail(RuntimeError("connection reset"))
    assert spec["root"] == "c"
    assert stream.done


def test_failed_stream_without_tree_gets_summary():
    stream = MessageStream("q")
    stream.append('{"root":')
    spec = stream.fail(RuntimeError("timeout"))
    assert stream.source == "canned"
    assert spec is not None


def test_append_after_finish_is_ignored():
    stream = MessageStream("q")
    stream.finish()
    stream.append(FLAT)
    assert stream.buffer == ""


def test_conversation_flow():
    convo = Conversation()
    assert convo.messages[0].id == "intro"

    reply = convo.ask("  What tech stack?  ", iter(["Mostly React.\n", "- TypeScript"]))
    assert [m.id for m in convo.messages] == ["intro", "user-1", "assistant-2"]
    assert convo.messages[1].text == "What tech stack?"
    assert reply.text is None
    assert _types(reply.spec) == ["Heading", "Text", "List"]
    assert convo.follow_ups == get_follow_ups("skills")


def test_streaming_text_hides_raw_json():
    convo = Conversation(intro=False)
    seen = []

    def chunks():
        yield "Mostly React."
        seen.append(convo.messages[-1].text)
        yield '\n```json\n{"root":'
        seen.append(convo.messages[-1].text)

    convo.ask("q", chunks())
    assert seen == ["Mostly React.", "Thinking..."]


def test_conversation_isolates_broken_stream():
    def broken():
        yield '{"root":'
        raise ConnectionError("dropped")

    convo = Conversation(intro=False)
    first = convo.ask("q1", broken())
    second = convo.ask("q2", iter([FLAT]))
    assert first.spec["elements"][first.spec["root"]]["props"]["title"] == "Quick summary"
    assert second.spec["root"] == "c"


def test_blank_prompt_is_ignored():
    convo = Conversation(intro=False)
    assert convo.ask("   ", iter(["x"])) is None
    assert convo.messages == []


def test_follow_ups():
    assert "Where can I find your GitHub?" in get_follow_ups("What is your email?")
    assert "What kind of teams have you led?" in get_follow_ups("Previous company?")
    assert "What is your preferred tech stack?" in get_follow_ups("skills")
    assert "What industries have you worked in?" in get_follow_ups("hello")
