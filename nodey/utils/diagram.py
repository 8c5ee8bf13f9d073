"""Diagram schema — boundary validation for Diagram JSON and deterministic structural checks.

normalize_diagram() turns untrusted JSON (an LLM reply or a saved file) into a
clean Diagram or raises ValueError. check_diagram() reports softer issues that
do not make a diagram unusable, such as a decision without a "no" branch.
"""

import json

from nodey.state import Diagram

NODE_KINDS = {"start", "trigger", "action", "decision", "end"}
CONNECTION_LABELS = {"out", "yes", "no"}
MIN_NODES = 2

# Map common LLM kind deviations to valid kinds
_KIND_ALIASES = {
    "begin": "start",
    "entry": "start",
    "event": "trigger",
    "process": "action",
    "step": "action",
    "task": "action",
    "activity": "action",
    "condition": "decision",
    "branch": "decision",
    "gateway": "decision",
    "if": "decision",
    "finish": "end",
    "stop": "end",
    "exit": "end",
    "terminal": "end",
}

_LABEL_ALIASES = {
    "": "out",
    "next": "out",
    "default": "out",
    "true": "yes",
    "false": "no",
}


def _normalize_kind(raw, index: int) -> str:
    kind = str(raw or "").strip().lower()
    if kind in NODE_KINDS:
        return kind
    normalized = _KIND_ALIASES.get(kind)
    if normalized:
        return normalized
    raise ValueError(
        f"Node {index} has invalid type '{raw}'. Must be one of: {sorted(NODE_KINDS)}"
    )


def _normalize_label(raw, index: int) -> str:
    label = str(raw or "").strip().lower()
    if label in CONNECTION_LABELS:
        return label
    if label in _LABEL_ALIASES:
        return _LABEL_ALIASES[label]
    raise ValueError(
        f"Connection {index} has invalid type '{raw}'. Must be one of: {sorted(CONNECTION_LABELS)}"
    )


def _coordinate(value, name: str, index: int) -> int:
    if value is None:
        return 0
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValueError(f"Node {index} has non-numeric {name} '{value}'.") from None


def normalize_diagram(data: dict, min_nodes: int = MIN_NODES) -> Diagram:
    """Validate a raw Diagram payload and return a normalized copy.

    Raises ValueError on any structural mismatch: missing sections, unknown
    node or connection types, duplicate node ids, dangling connections, or
    fewer than min_nodes nodes.
    """
    if not isinstance(data, dict):
        raise ValueError("Diagram must be a JSON object.")

    raw_nodes = data.get("nodes")
    if not isinstance(raw_nodes, list):
        raise ValueError("Diagram missing 'nodes' list.")
    raw_connections = data.get("connections", [])
    if not isinstance(raw_connections, list):
        raise ValueError("Diagram 'connections' must be a list.")

    overview = data.get("overview") or {}
    if not isinstance(overview, dict):
        raise ValueError("Diagram 'overview' must be an object.")

    nodes = []
    seen_ids = set()
    for i, node in enumerate(raw_nodes):
        if not isinstance(node, dict) or "id" not in node:
            raise ValueError(f"Node {i} missing required field 'id'.")
        node_id = str(node["id"]).strip()
        if not node_id:
            raise ValueError(f"Node {i} has an empty id.")
        if node_id in seen_ids:
            raise ValueError(f"Duplicate node id '{node_id}'.")
        seen_ids.add(node_id)
        nodes.append({
            "id": node_id,
            "type": _normalize_kind(node.get("type"), i),
            "x": _coordinate(node.get("x"), "x", i),
            "y": _coordinate(node.get("y"), "y", i),
            "title": str(node.get("title") or node_id),
            "notes": str(node.get("notes") or ""),
        })

    if len(nodes) < min_nodes:
        raise ValueError(
            f"Diagram has {len(nodes)} node(s); at least {min_nodes} are required."
        )

    connections = []
    for i, conn in enumerate(raw_connections):
        if not isinstance(conn, dict) or "from" not in conn or "to" not in conn:
            raise ValueError(f"Connection {i} missing required fields (from, to).")
        source, target = str(conn["from"]).strip(), str(conn["to"]).strip()
        for end in (source, target):
            if end not in seen_ids:
                raise ValueError(f"Connection {i} references unknown node '{end}'.")
        connections.append({
            "from": source,
            "to": target,
            "type": _normalize_label(conn.get("type"), i),
        })

    return {
        "overview": {
            "title": str(overview.get("title") or ""),
            "summary": str(overview.get("summary") or ""),
        },
        "nodes": nodes,
        "connections": connections,
    }


def check_diagram(diagram: Diagram) -> list[str]:
    """Check a normalized diagram for flow-level problems.

    Returns a list of issue strings. Empty list = structurally clean.
    """
    issues = []
    nodes = diagram.get("nodes", [])
    connections = diagram.get("connections", [])
    kinds = {node["id"]: node["type"] for node in nodes}

    if "start" not in kinds.values() and "trigger" not in kinds.values():
        issues.append("No 'start' or 'trigger' node.")
    if "end" not in kinds.values():
        issues.append("No 'end' node.")

    outgoing = {node_id: set() for node_id in kinds}
    incoming = {node_id: 0 for node_id in kinds}
    for conn in connections:
        if conn["from"] in outgoing:
            outgoing[conn["from"]].add(conn["type"])
        if conn["to"] in incoming:
            incoming[conn["to"]] += 1
        if conn["type"] in ("yes", "no") and kinds.get(conn["from"]) != "decision":
            issues.append(
                f"Connection {conn['from']} -> {conn['to']} is labelled "
                f"'{conn['type']}' but does not leave a decision node."
            )

    for node_id, kind in kinds.items():
        if kind == "decision":
            missing = {"yes", "no"} - outgoing[node_id]
            if missing:
                issues.append(
                    f"Decision node '{node_id}' is missing its "
                    f"{' and '.join(sorted(missing))} branch."
                )
        if kind not in ("start", "trigger") and incoming[node_id] == 0 and len(kinds) > 1:
            issues.append(f"Node '{node_id}' is unreachable (no incoming connection).")

    return issues


def diagram_to_json(diagram: Diagram, indent: int | None = 2) -> str:
    """Serialize a diagram to its canonical JSON form."""
    return json.dumps(diagram, indent=indent)
