#!/usr/bin/env python3
"""Diagram editor CLI - serve the editor session, inspect diagram files."""

import argparse
import json
import sys
from collections import Counter

from diagram_core.logging import setup_logging
from diagram_core.validation import validate_diagram, validation_summary

from .session import EditorSession
from .settings import ServerSettings


def _json_out(data, code=0):
    print(json.dumps(data))
    sys.exit(code)


def _open(path):
    """Load a diagram file into a fresh session, or exit with a JSON error."""
    session = EditorSession()
    try:
        session.open_diagram(path)
    except FileNotFoundError as e:
        _json_out({"status": "error", "error": str(e)}, 1)
    except ValueError as e:
        _json_out({"status": "error", "error": f"Failed to open diagram: {e}"}, 1)
    return session


# ── Service ──────────────────────────────────────────────────────────────────

def cmd_serve(args):
    import uvicorn

    from .main import create_app

    settings = ServerSettings.from_env()
    overrides = {k: v for k, v in (("host", args.host), ("port", args.port),
                                   ("diagrams_dir", args.diagrams_dir)) if v is not None}
    settings = settings.model_copy(update=overrides)
    uvicorn.run(create_app(settings=settings), host=settings.host, port=settings.port,
                log_level=args.log_level.lower())


# ── Files ────────────────────────────────────────────────────────────────────

def cmd_validate(args):
    session = _open(args.file)
    issues = validate_diagram(session.diagram, session.plugin)
    summary = validation_summary(issues)
    _json_out({
        "status": "ok" if summary["valid"] else "invalid",
        "file": args.file,
        "issues": [issue.to_dict() for issue in issues],
        "summary": summary,
    }, 0 if summary["valid"] else 1)


def cmd_info(args):
    session = _open(args.file)
    diagram = session.diagram
    bounds = diagram.get_bounds()
    _json_out({
        "status": "ok",
        "id": diagram.id,
        "name": diagram.name,
        "type": diagram.type,
        "modified": diagram.modified,
        "shapes": len(diagram.get_shapes()),
        "connections": len(diagram.get_connections()),
        "shape_types": dict(Counter(s.type for s in diagram.get_shapes())),
        "connection_types": dict(Counter(c.type for c in diagram.get_connections())),
        "bounds": None if bounds is None else {
            "x": bounds.x, "y": bounds.y, "width": bounds.width, "height": bounds.height,
        },
    })


def cmd_repair(args):
    session = _open(args.file)
    removed = session.repair()
    path = session.save_diagram(args.output) if removed or args.output else session.file_path
    _json_out({"status": "ok", "removed": removed, "file": str(path)})


# ── Plugins ──────────────────────────────────────────────────────────────────

def cmd_plugins(args):
    session = EditorSession()
    _json_out({
        "status": "ok",
        "plugins": [
            {
                "id": plugin.id,
                "name": plugin.name,
                "shapes": list(plugin.shape_definitions()),
                "connectors": [c.type for c in plugin.connector_types()],
                "shortcuts": {t.shortcut: t.id for t in plugin.tools() if t.shortcut},
            }
            for plugin in session.registry.all()
        ],
    })


def main(argv=None):
    parser = argparse.ArgumentParser(description="Diagram editor CLI")
    parser.add_argument("--log-level", default="WARNING",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("serve")
    p.add_argument("--host", default=None)
    p.add_argument("--port", type=int, default=None)
    p.add_argument("--diagrams-dir", default=None)

    p = sub.add_parser("validate")
    p.add_argument("file")

    p = sub.add_parser("info")
    p.add_argument("file")

    p = sub.add_parser("repair")
    p.add_argument("file")
    p.add_argument("--output", default=None)

    sub.add_parser("plugins")

    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    cmd_map = {
        "serve": cmd_serve,
        "validate": cmd_validate,
        "info": cmd_info,
        "repair": cmd_repair,
        "plugins": cmd_plugins,
    }
    cmd_map[args.command](args)


if __name__ == "__main__":
    main()
