import logging

logger = logging.getLogger("portfolio_chat.normalizer")

WRAPPER_TYPE = "Card"
DEFAULT_ELEMENT_TYPE = "Text"
ANONYMOUS_KEY_PREFIX = "el"
WRAPPER_KEY = "root"


def is_flat_shape(value):
    return (
        isinstance(value, dict)
        and isinstance(value.get("root"), str)
        and isinstance(value.get("elements"), dict)
    )


def is_nested_shape(value):
    return isinstance(value, dict) and isinstance(value.get("type"), str)


class _ElementRegistry:
    """Elements collected from one source value, kept in encounter order."""

    def __init__(self):
        self.elements = {}
        self.taken = set()

    def reserve(self, keys):
        self.taken.update(keys)

    def claim_key(self, preferred=None):
        # Source key wins when free; otherwise suffix it (or the anonymous prefix) until unique.
        if isinstance(preferred, str) and preferred and preferred not in self.taken:
            self.taken.add(preferred)
            return preferred
        base = preferred if isinstance(preferred, str) and preferred else ANONYMOUS_KEY_PREFIX
        n = 1
        while f"{base}-{n}" in self.taken:
            n += 1
        key = f"{base}-{n}"
        self.taken.add(key)
        return key

    def register(self, raw, key, parent_key=None):
        element_type = raw.get("type")
        props = raw.get("props")
        element = {
            "key": key,
            "type": element_type if isinstance(element_type, str) and element_type else DEFAULT_ELEMENT_TYPE,
            "props": dict(props) if isinstance(props, dict) else {},
            "children": [],
            "parentKey": parent_key,
        }
        self.elements[key] = element

        raw_children = raw.get("children")
        if isinstance(raw_children, dict):
            raw_children = [raw_children]
        if not isinstance(raw_children, list):
            return key

        for entry in raw_children:
            if isinstance(entry, str):
                # Reference to an element described elsewhere; resolved during reconciliation.
                element["children"].append(entry)
            elif isinstance(entry, dict):
                child_key = self.claim_key(entry.get("key"))
                self.register(entry, child_key, parent_key=key)
                element["children"].append(child_key)
        return key


def _is_ancestor_or_self(owner, candidate, key):
    current = key
    while current is not None:
        if current == candidate:
            return True
        current = owner.get(current)
    return False


def _reconcile_parents(elements):
    """Make parent/child links agree. Returns the child -> owner map.

    Forward `children` links are applied first and overwrite whatever
    `parentKey` the source claimed. A key keeps only its first claimant, and
    links that would close a cycle or point at nothing are dropped. Elements
    nobody lists are then attached under their declared `parentKey` when
    that element exists.
    """
    owner = {}
    for key, element in elements.items():
        kept = []
        for child in element["children"]:
            if child not in elements or child in owner:
                continue
            if _is_ancestor_or_self(owner, child, key):
                continue
            owner[child] = key
            kept.append(child)
        element["children"] = kept

    for key, element in elements.items():
        if key in owner:
            element["parentKey"] = owner[key]
            continue
        parent = element["parentKey"]
        if not isinstance(parent, str) or parent not in elements:
            continue
        if _is_ancestor_or_self(owner, key, parent):
            element["parentKey"] = None
            continue
        owner[key] = parent
        elements[parent]["children"].append(key)
    return owner


def _wrapper(key, children):
    return {"key": key, "type": WRAPPER_TYPE, "props": {}, "children": list(children), "parentKey": None}


def _resolve_root(registry, owner, declared_root):
    """Pick or synthesize the root. Returns (root_key, wrapper_element_or_None)."""
    elements = registry.elements

    if declared_root in elements:
        previous_owner = owner.pop(declared_root, None)
        if previous_owner is not None:
            elements[previous_owner]["children"].remove(declared_root)
        return declared_root, None

    masterless = [key for key in elements if key not in owner]

    expecting = [key for key in masterless if elements[key]["parentKey"] == declared_root]
    if expecting:
        root_key = registry.claim_key(declared_root)
        logger.debug("synthesized_root rule=missing_declared_root key=%s adopted=%s", root_key, len(expecting))
        return root_key, _wrapper(root_key, expecting)

    if len(masterless) == 1:
        return masterless[0], None
    if masterless:
        root_key = registry.claim_key(WRAPPER_KEY)
        logger.debug("synthesized_root rule=multiple_masterless key=%s adopted=%s", root_key, len(masterless))
        return root_key, _wrapper(root_key, masterless)
    return None, None


def _canonical(registry, declared_root):
    elements = registry.elements
    if not elements:
        return None

    owner = _reconcile_parents(elements)
    root_key, wrapper = _resolve_root(registry, owner, declared_root)
    if root_key is None:
        return None

    ordered = {}
    if wrapper is not None:
        ordered[root_key] = wrapper
        for child in wrapper["children"]:
            owner[child] = root_key
    ordered.update(elements)

    # Anything still unowned would be unreachable; hang it off the root in encounter order.
    root = ordered[root_key]
    for key in elements:
        if key != root_key and key not in owner:
            owner[key] = root_key
            root["children"].append(key)

    out = {}
    for key, element in ordered.items():
        out[key] = {
            "key": key,
            "type": element["type"],
            "props": dict(element["props"]),
            "children": list(element["children"]),
            "parentKey": owner.get(key) if key != root_key else None,
        }
    return {"root": root_key, "elements": out}


def nested_to_flat(value):
    """Convert a nested {type, props, children} description into {root, elements}."""
    registry = _ElementRegistry()
    root_key = registry.claim_key(value.get("key"))
    registry.register(value, root_key)
    return {"root": root_key, "elements": registry.elements}


def normalize_spec(value):
    """Converge a flat or nested tree description onto one canonical spec.

    Returns None when the value is neither shape or carries no element data.
    """
    if is_flat_shape(value):
        registry = _ElementRegistry()
        source = value["elements"]
        registry.reserve(key for key, raw in source.items() if isinstance(raw, dict))
        for key, raw in source.items():
            if not isinstance(raw, dict):
                continue
            parent_key = raw.get("parentKey")
            registry.register(raw, key, parent_key=parent_key if isinstance(parent_key, str) else None)
        return _canonical(registry, value["root"])

    if is_nested_shape(value):
        return normalize_spec(nested_to_flat(value))

    return None
