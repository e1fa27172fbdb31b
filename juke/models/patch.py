"""Single-document update description shared by the user and track stores."""

from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass
class DocumentPatch:
    """
    Update applied to one document as a single indivisible write.

    Field names may be dotted ("swipes.likes") to address nested maps.
    set: replace value. push: append item to a list. add_to_set: append
    item unless already present. inc: add integer delta. unset: remove field.
    """

    set: Dict[str, Any] = field(default_factory=dict)
    push: Dict[str, Any] = field(default_factory=dict)
    add_to_set: Dict[str, Any] = field(default_factory=dict)
    inc: Dict[str, int] = field(default_factory=dict)
    unset: List[str] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.set or self.push or self.add_to_set or self.inc or self.unset)


def _parent(doc: Dict, dotted: str, create: bool = True):
    parts = dotted.split(".")
    node = doc
    for part in parts[:-1]:
        if part not in node or not isinstance(node[part], dict):
            if not create:
                return None, parts[-1]
            node[part] = {}
        node = node[part]
    return node, parts[-1]


def apply_patch(doc: Dict, patch: DocumentPatch) -> Dict:
    """Apply patch to a plain dict in place (used by the JSON stores)."""
    for key, value in patch.set.items():
        node, leaf = _parent(doc, key)
        node[leaf] = value
    for key, item in patch.push.items():
        node, leaf = _parent(doc, key)
        node.setdefault(leaf, []).append(item)
    for key, item in patch.add_to_set.items():
        node, leaf = _parent(doc, key)
        values = node.setdefault(leaf, [])
        if item not in values:
            values.append(item)
    for key, delta in patch.inc.items():
        node, leaf = _parent(doc, key)
        node[leaf] = (node.get(leaf) or 0) + delta
    for key in patch.unset:
        node, leaf = _parent(doc, key, create=False)
        if node is not None:
            node.pop(leaf, None)
    return doc
