"""Main entry point for the canvas CLI.

Usage: canvas-cli [path/to/canvas.json]   (default: $CANVAS_FILE or data/canvas.json)
"""
import sys
from pathlib import Path

from canvas import CanvasSession
from cli import CLI, configure_logging
from storage import Storage


def main():
    configure_logging()
    path = Path(sys.argv[1]) if len(sys.argv) > 1 else None
    doc = Storage.load_canvas(path)
    cli = CLI(CanvasSession.from_document(doc), path, load_error=doc.error)
    cli.run()

if __name__ == "__main__":
    main()
