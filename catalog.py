import json

# Closed vocabulary the renderer understands: type -> (prop names, has children, description).
COMPONENTS = {
    "Card": (["title", "subtitle"], True, "Card container with optional title"),
    "Heading": (["text", "level"], False, "Section heading; level is h2, h3 or h4"),
    "Text": (["content", "variant"], False, "Paragraph text; variant is body, muted or caption"),
    "List": ([], True, "List wrapper"),
    "ListItem": (["content", "meta", "href"], False, "List item"),
    "Link": (["label", "href"], False, "Link"),
    "TagRow": ([], True, "Row of tags"),
    "Tag": (["text"], False, "Tag"),
    "Divider": (["label"], False, "Divider"),
    "Resume": (["title", "href"], False, "Resume preview with download link"),
    "InterestGrid": (["title", "items"], False, "Grid of personal interests"),
}

COMPONENT_NAMES = list(COMPONENTS)

_example_spec = {
    "root": "card",
    "elements": {
        "card": {"type": "Card", "props": {"title": "Skills"}, "children": ["intro", "tags"]},
        "intro": {"type": "Text", "props": {"content": "Mostly React and TypeScript."}, "parentKey": "card"},
        "tags": {"type": "TagRow", "props": {}, "children": ["t1"], "parentKey": "card"},
        "t1": {"type": "Tag", "props": {"text": "React"}, "parentKey": "tags"},
    },
}


def catalog_prompt():
    """Instruction block asking the model to answer with a flat JSON UI spec."""
    lines = [
        "UI output contract:",
        "- Answer ONLY with one JSON object, no prose before or after it.",
        '- Shape: {"root": <key>, "elements": {<key>: {"type", "props", "children", "parentKey"}}}.',
        "- Every key in `children` and `root` must exist in `elements`.",
        "- Use only these component types:",
    ]
    for name, (props, has_children, description) in COMPONENTS.items():
        prop_text = ", ".join(props) if props else "no props"
        child_text = " (has children)" if has_children else ""
        lines.append(f"  - {name}: {description}; props: {prop_text}{child_text}")
    lines.append("- Example:")
    lines.append(json.dumps(_example_spec))
    return "\n".join(lines)
