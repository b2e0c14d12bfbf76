"""HUD status line entry point and wrapper."""
