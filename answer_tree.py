import re

from profile_data import PROFILE
from tree import create_tree, node

FALLBACK_SUMMARY = "Here is what I found from the resume."

_resume_re = re.compile(r"\b(resumes?|résumés?|cvs?)\b", re.I)
_interests_re = re.compile(r"\b(outside|hobbies|hobby|personal|interests?)\b", re.I)


def _split_answer(answer):
    lines = [line.strip() for line in (answer or "").split("\n")]
    bullets = [re.sub(r"^-\s*", "", line) for line in lines if line.startswith("-")]
    summary = " ".join(line for line in lines if line and not line.startswith("-"))
    return summary, bullets


def _resume_block(profile):
    resume = profile.get("resume") or {}
    return node("Resume", {"title": resume.get("title") or "Resume", "href": resume.get("href") or ""})


def _interest_block(profile):
    return node("InterestGrid", {"title": "Outside of work", "items": list(profile.get("interests") or [])})


def build_tree_from_answer(prompt, answer, profile=None):
    """Turn a plain-text answer into a Card spec: heading, summary and bullet list.

    Questions about the resume or about personal interests get a block built
    from the profile record instead of the summary and list.
    """
    profile = PROFILE if profile is None else profile
    children = [node("Heading", {"text": prompt, "level": "h3"})]

    if _resume_re.search(prompt or ""):
        children.append(_resume_block(profile))
    elif _interests_re.search(prompt or ""):
        children.append(_interest_block(profile))
    else:
        summary, bullets = _split_answer(answer)
        children.append(node("Text", {"content": summary or FALLBACK_SUMMARY}))
        if bullets:
            children.append(node("List", {}, [node("ListItem", {"content": item}) for item in bullets]))

    return create_tree(node("Card", {"title": "Answer"}, children))
