import pytest


def _check_canonical(spec):
    assert spec is not None
    elements = spec["elements"]
    root = spec["root"]
    assert root in elements

    parentless = [key for key, el in elements.items() if el.get("parentKey") is None]
    assert parentless == [root]

    for key, element in elements.items():
        assert element["key"] == key
        for child in element.get("children") or []:
            assert child in elements
            assert elements[child]["parentKey"] == key

    # Every element reachable from the root exactly once.
    seen = []
    stack = [root]
    while stack:
        key = stack.pop()
        seen.append(key)
        stack.extend(elements[key].get("children") or [])
    assert sorted(seen) == sorted(elements)


@pytest.fixture
def assert_canonical():
    return _check_canonical
