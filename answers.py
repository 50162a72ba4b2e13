from profile_data import PROFILE
from tree import create_tree, node

QUICK_TOPICS = ["Experience", "Skills", "Education", "Contact", "AI tools"]

# Checked in order; first match wins.
_routes = [
    (("experience", "role", "company", "work", "career"), "experience"),
    (("education", "school", "college", "study"), "education"),
    (("contact", "email", "linkedin", "github"), "contact"),
    (("ai", "assistant", "workflow", "tools"), "ai_tools"),
    (("skills", "stack", "tech"), "skills"),
    (("about", "bio", "background", "who"), "about"),
]


def _matches(text, keywords):
    return any(keyword in text for keyword in keywords)


def _list(items):
    return node("List", {}, [node("ListItem", {"content": item}) for item in items])


def _tags(items):
    return node("TagRow", {}, [node("Tag", {"text": item}) for item in items])


def build_intro_tree(profile=None):
    profile = profile or PROFILE
    about = profile.get("about") or []
    return create_tree(
        node("Card", {"title": profile.get("name", ""), "subtitle": profile.get("title", "")}, [
            node("Text", {"content": profile.get("tagline", "")}),
            node("Text", {"content": about[0] if about else ""}),
            node("Text", {"content": "Ask me anything about my experience, skills, or projects.", "variant": "muted"}),
            _list([f"Ask about {topic.lower()}" for topic in QUICK_TOPICS]),
        ])
    )


def build_summary_tree(profile=None):
    """Generic profile summary; also the tree shown when the model call fails outright."""
    profile = profile or PROFILE
    about = profile.get("about") or []
    return create_tree(
        node("Card", {"title": "Quick summary", "subtitle": profile.get("title", "")}, [
            node("Text", {"content": profile.get("tagline", "")}),
            node("Text", {"content": about[0] if about else ""}),
            node("Divider", {"label": "Highlights"}),
            _list(profile.get("highlights") or []),
        ])
    )


def build_about_tree(profile=None):
    profile = profile or PROFILE
    first_name = (profile.get("name") or "").split(" ")[0]
    return create_tree(
        node("Card", {"title": f"About {first_name}".strip()}, [
            node("Text", {"content": paragraph}) for paragraph in profile.get("about") or []
        ])
    )


def build_experience_tree(profile=None):
    profile = profile or PROFILE
    roles = profile.get("experience") or []
    blocks = []
    for index, role in enumerate(roles):
        blocks.extend([
            node("Heading", {"text": f"{role.get('title', '')} - {role.get('company', '')}", "level": "h3"}),
            node("Text", {"content": f"{role.get('dateRange', '')} | {role.get('location', '')}", "variant": "caption"}),
            node("Text", {"content": role.get("description", "")}),
            _list(role.get("achievements") or []),
            _tags(role.get("skills") or []),
        ])
        if index < len(roles) - 1:
            blocks.append(node("Divider", {"label": ""}))
    return create_tree(node("Card", {"title": "Experience"}, blocks))


def build_skills_tree(profile=None):
    profile = profile or PROFILE
    return create_tree(
        node("Card", {"title": "Skills and focus"}, [
            _tags(profile.get("skills") or []),
            node("Divider", {"label": "Current focus"}),
            _list(profile.get("highlights") or []),
        ])
    )


def build_education_tree(profile=None):
    profile = profile or PROFILE
    entries = profile.get("education") or []
    parts = []
    for index, entry in enumerate(entries):
        parts.extend([
            node("Heading", {"text": entry.get("school", ""), "level": "h3"}),
            node("Text", {"content": entry.get("location") or "Remote", "variant": "caption"}),
            node("Text", {"content": entry.get("focus", "")}),
            node("Text", {"content": entry.get("dateRange", ""), "variant": "muted"}),
        ])
        if index < len(entries) - 1:
            parts.append(node("Divider", {"label": ""}))
    return create_tree(node("Card", {"title": "Education"}, parts))


def build_contact_tree(profile=None):
    profile = profile or PROFILE
    contact = profile.get("contact") or {}
    items = []
    if contact.get("email"):
        items.append(node("ListItem", {
            "content": contact["email"],
            "meta": "Email",
            "href": f"mailto:{contact['email']}",
        }))
    for label, field in (("LinkedIn", "linkedin"), ("GitHub", "github"), ("Website", "site")):
        if contact.get(field):
            items.append(node("ListItem", {"content": label, "meta": contact[field], "href": contact[field]}))
    return create_tree(node("Card", {"title": "Contact"}, [node("List", {}, items)]))


def build_ai_tools_tree(profile=None):
    profile = profile or PROFILE
    first_name = (profile.get("name") or "").split(" ")[0] or "I"
    return create_tree(
        node("Card", {"title": "AI-assisted workflow"}, [
            node("Text", {
                "content": (
                    f"{first_name} leverages AI tools daily to prototype features, "
                    "refactor code, and improve test coverage."
                ),
            }),
            _tags(profile.get("aiTools") or []),
        ])
    )


_builders = {
    "experience": build_experience_tree,
    "education": build_education_tree,
    "contact": build_contact_tree,
    "ai_tools": build_ai_tools_tree,
    "skills": build_skills_tree,
    "about": build_about_tree,
}


def build_answer_tree(question, profile=None):
    """Canned answer straight from the profile record, used when no model is configured."""
    normalized = (question or "").lower()
    for keywords, topic in _routes:
        if _matches(normalized, keywords):
            return _builders[topic](profile)
    return build_summary_tree(profile)
