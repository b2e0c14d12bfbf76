"""Hook entry points.

Each module is a host-invoked process: capture stdin, dispatch, emit one line.
Keep this package free of import-time side effects.
"""
