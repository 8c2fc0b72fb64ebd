"""
Edge sink: aggregates the edge stream into a graph and renders it.

The HTML output draws the graph with SpringyJS; springy.js and springyui.js
are expected next to the written file.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, Iterable, List, Tuple, Union

from linkcrawler.models import Edge

SPRINGY_HEAD = """<html>
<body>
<script src="http://ajax.googleapis.com/ajax/libs/jquery/1.3.2/jquery.min.js"></script>
<script src="springy.js"></script>
<script src="springyui.js"></script>
<script>
var graph = new Springy.Graph();
"""

SPRINGY_TAIL = """jQuery(function(){
var springy = jQuery('#springydemo').springy({
graph: graph
});
});
</script>
<canvas id="springydemo" width="1200" height="800" />
</body>
</html>"""

EDGE_COLOR = "#000000"


def js_string(value: str) -> str:
    """Quote a value as a JavaScript string literal safe inside <script>."""
    return json.dumps(value).replace("</", "<\\/")


class LinkGraph:
    """Nodes and counted edges, both kept in first-seen order."""

    def __init__(self) -> None:
        self._nodes: Dict[str, None] = {}
        self._edges: Dict[Tuple[str, str], int] = {}

    def add(self, edge: Edge) -> None:
        self._nodes.setdefault(edge.source, None)
        self._nodes.setdefault(edge.target, None)
        key = (edge.source, edge.target)
        self._edges[key] = self._edges.get(key, 0) + 1

    def consume(self, edges: Iterable[Edge]) -> "LinkGraph":
        """Add every edge until the stream ends."""
        for edge in edges:
            self.add(edge)
        return self

    @property
    def nodes(self) -> List[str]:
        return list(self._nodes)

    @property
    def edges(self) -> List[Tuple[str, str, int]]:
        return [(source, target, count) for (source, target), count in self._edges.items()]

    def to_dict(self) -> dict:
        return {
            "nodes": self.nodes,
            "edges": [{"from": s, "to": t, "count": c} for s, t, c in self.edges],
        }

    def render_html(self) -> str:
        lines = [SPRINGY_HEAD]
        for node in self._nodes:
            lines.append(f"graph.addNodes({js_string(node)});\n")
        lines.append("graph.addEdges(\n")
        edge_lines = [
            f"[{js_string(s)}, {js_string(t)}, {{color: '{EDGE_COLOR}', label: '{c}'}}]"
            for s, t, c in self.edges
        ]
        lines.append(",\n".join(edge_lines))
        lines.append("\n);\n\n")
        lines.append(SPRINGY_TAIL)
        return "".join(lines)

    def write_html(self, path: Union[str, Path]) -> Path:
        p = Path(path)
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(self.render_html(), encoding="utf-8")
        return p

    def write_json(self, path: Union[str, Path], pretty: bool = False) -> Path:
        p = Path(path)
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(json.dumps(self.to_dict(), ensure_ascii=False, indent=2 if pretty else None), encoding="utf-8")
        return p
