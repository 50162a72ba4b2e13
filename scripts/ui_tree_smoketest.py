import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import json
from answer_tree import build_tree_from_answer
from extractor import extract_spec
from spec_normalizer import normalize_spec


def _assert(cond, msg):
    if not cond:
        raise AssertionError(msg)


def test_orphan_gets_synthesized_root():
    spec = normalize_spec(
        {"root": "a", "elements": {"b": {"type": "Text", "props": {"content": "hi"}, "parentKey": "a"}}}
    )
    _assert(spec is not None and len(spec["elements"]) == 2, "Expected wrapper + orphan")
    _assert(spec["elements"]["b"]["parentKey"] == spec["root"], "Orphan not adopted by root")


def test_stream_fragments():
    first = '{"root":"x","elem'
    second = first + 'ents":{"x":{"type":"Card","props":{},"children":[]}}}'
    _assert(extract_spec(first) is None, "Partial JSON produced a tree")
    _assert(extract_spec(second)["root"] == "x", "Complete JSON did not produce a tree")


def test_fenced_nested_card():
    spec = extract_spec('```json\n{"type":"Card","props":{},"children":[]}\n```')
    _assert(spec is not None and len(spec["elements"]) == 1, "Fence not stripped")
    _assert(spec["elements"][spec["root"]]["type"] == "Card", "Wrong root type")


def test_plain_text_fallback():
    spec = build_tree_from_answer("Skills?", "Line one.\n- point A\n- point B")
    elements = spec["elements"]
    heading, text, items = [elements[k] for k in elements[spec["root"]]["children"]]
    _assert(heading["props"]["text"] == "Skills?", "Bad heading")
    _assert(text["props"]["content"] == "Line one.", "Bad summary")
    contents = [elements[k]["props"]["content"] for k in items["children"]]
    _assert(contents == ["point A", "point B"], f"Bad list items: {contents}")


def test_resume_prompt():
    spec = build_tree_from_answer("Can I see your resume?", "Sure.\n- one")
    types = [spec["elements"][k]["type"] for k in spec["elements"][spec["root"]]["children"]]
    _assert("Resume" in types and "List" not in types, f"Resume block not substituted: {types}")


if __name__ == "__main__":
    test_orphan_gets_synthesized_root()
    test_stream_fragments()
    test_fenced_nested_card()
    test_plain_text_fallback()
    test_resume_prompt()
    print(json.dumps({"ok": True}))
