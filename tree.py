def node(type, props=None, children=None):
    """Describe one UI node for create_tree()."""
    return {"type": type, "props": props, "children": children}


def create_tree(root_node):
    """Flatten a nested node description into a spec: {"root": key, "elements": {key: element}}.

    Keys are `<lowercased type>-<n>` from one counter shared across the whole build.
    A node takes its key before its children are walked, so the root is always
    `<type>-0` and every child can point back at its parent.
    """
    elements = {}
    counter = 0

    def walk(item, parent_key):
        nonlocal counter
        key = f"{item['type'].lower()}-{counter}"
        counter += 1
        child_keys = [walk(child, key) for child in (item.get("children") or [])]

        element = {
            "key": key,
            "type": item["type"],
            "props": item.get("props") or {},
            "parentKey": parent_key,
        }
        if child_keys:
            element["children"] = child_keys
        elements[key] = element
        return key

    root = walk(root_node, None)
    return {"root": root, "elements": elements}
