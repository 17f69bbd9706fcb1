"""Render payload export.

Writes what the rendering surface receives (positioned nodes, typed edges,
highlight set) to a JSON file, for external viewers and debugging.
"""

import json
from datetime import datetime, timezone
from pathlib import Path

from .session import ProjectSession


def export_render_payload(
    session: ProjectSession,
    data_dir: Path,
    output_path: Path | None = None,
) -> Path:
    """Export the current view of a project.

    Args:
        session: Open project session
        data_dir: Base data directory
        output_path: Where to write JSON (default: auto-generated under exports/)

    Returns:
        Path to exported JSON file
    """
    payload = session.render_payload()
    stats = session.node_stats()
    data = {
        "meta": {
            "exported_at": datetime.now(timezone.utc).isoformat(),
            "project_id": session.project_id,
            "mode": session.mode,
            "node_count": stats["node_count"],
            "edge_count": stats["connections"],
        },
        **payload,
    }

    if output_path is None:
        export_dir = data_dir / "exports"
        export_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
        output_path = export_dir / f"{session.project_id}-{session.mode}-{timestamp}.json"

    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(json.dumps(data, indent=2))
    return output_path
