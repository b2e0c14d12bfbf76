#!/usr/bin/env python3
"""
HUD entry point.

Captures stdin before the renderer (and everything it imports) is loaded,
then hands the captured text to the renderer explicitly.

Exit codes:
    0: Rendered
    1: Renderer could not be loaded or failed
"""

import importlib
import sys

from omcm.lib.stdin_capture import capture_stdin

RENDERER_MODULE = "omcm.hud.renderer"


def main(stdin=None, renderer_module: str = RENDERER_MODULE) -> int:
    stdin_data = capture_stdin(stdin)

    try:
        renderer = importlib.import_module(renderer_module)
        return renderer.main(stdin_data)
    except Exception as e:
        print(f"[OMCM] Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
