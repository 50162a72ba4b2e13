import html
import logging

logger = logging.getLogger("portfolio_chat.render")

RENDER_FAILED_HTML = '<p class="jr-text jr-text-muted">Failed to render this response.</p>'
UNAVAILABLE_HTML = '<p class="jr-text jr-text-muted">Couldn\'t display response.</p>'


def _text(value):
    return html.escape("" if value is None else str(value))


def _card(props, inner):
    title = props.get("title")
    subtitle = props.get("subtitle")
    head = ""
    if title:
        head += f'<h2 class="jr-card-title">{_text(title)}</h2>'
    if subtitle:
        head += f'<p class="jr-card-subtitle">{_text(subtitle)}</p>'
    return f'<section class="jr-card">{head}{inner}</section>'


def _heading(props, inner):
    level = props.get("level") if props.get("level") in {"h2", "h3", "h4"} else "h3"
    return f'<{level} class="jr-heading">{_text(props.get("text"))}</{level}>'


def _paragraph(props, inner):
    variant = props.get("variant") if props.get("variant") in {"body", "muted", "caption"} else "body"
    return f'<p class="jr-text jr-text-{variant}">{_text(props.get("content"))}</p>'


def _list(props, inner):
    return f'<ul class="jr-list">{inner}</ul>'


def _list_item(props, inner):
    content = _text(props.get("content"))
    if props.get("href"):
        content = f'<a href="{_text(props["href"])}" target="_blank" rel="noreferrer">{content}</a>'
    meta = f'<span class="jr-list-meta">{_text(props["meta"])}</span>' if props.get("meta") else ""
    return f'<li class="jr-list-item">{content}{meta}</li>'


def _link(props, inner):
    return f'<a class="jr-link" href="{_text(props.get("href"))}">{_text(props.get("label"))}</a>'


def _tag_row(props, inner):
    return f'<div class="jr-tag-row">{inner}</div>'


def _tag(props, inner):
    return f'<span class="jr-tag">{_text(props.get("text"))}</span>'


def _divider(props, inner):
    label = props.get("label")
    if label:
        return f'<div class="jr-divider"><span>{_text(label)}</span></div>'
    return '<hr class="jr-divider" />'


def _resume(props, inner):
    title = _text(props.get("title") or "Resume")
    href = _text(props.get("href"))
    return (
        f'<div class="jr-resume"><p class="jr-resume-title">{title}</p>'
        f'<a class="jr-link" href="{href}" download>Download</a></div>'
    )


def _interest_grid(props, inner):
    items = props.get("items") if isinstance(props.get("items"), list) else []
    cells = "".join(f'<div class="jr-interest">{_text(item)}</div>' for item in items)
    title = f'<p class="jr-interest-title">{_text(props["title"])}</p>' if props.get("title") else ""
    return f'<div class="jr-interest-grid">{title}{cells}</div>'


def _unknown(element_type):
    return f'<p class="jr-text jr-text-muted">Unsupported component: {_text(element_type)}</p>'


REGISTRY = {
    "Card": _card,
    "Heading": _heading,
    "Text": _paragraph,
    "List": _list,
    "ListItem": _list_item,
    "Link": _link,
    "TagRow": _tag_row,
    "Tag": _tag,
    "Divider": _divider,
    "Resume": _resume,
    "InterestGrid": _interest_grid,
}


def render_spec(spec, registry=None):
    """Render a spec to HTML. Raises on malformed specs; see render_message() for the safe path."""
    registry = registry or REGISTRY
    elements = spec["elements"]

    def render_key(key, depth):
        element = elements.get(key)
        if element is None:
            return ""
        if depth > len(elements):
            raise ValueError(f"Cycle detected at element {key!r}")
        inner = "".join(render_key(child, depth + 1) for child in element.get("children") or [])
        component = registry.get(element.get("type"))
        if component is None:
            return _unknown(element.get("type"))
        return component(element.get("props") or {}, inner)

    return render_key(spec["root"], 0)


def render_message(spec, registry=None):
    """Render one chat message; a failure only replaces this message with a placeholder."""
    if spec is None:
        return UNAVAILABLE_HTML
    try:
        return render_spec(spec, registry=registry)
    except Exception:
        logger.exception("render_failed root=%s", spec.get("root") if isinstance(spec, dict) else None)
        return RENDER_FAILED_HTML
