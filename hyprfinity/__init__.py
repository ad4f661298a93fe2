"""Hyprfinity - span a Gamescope session across every Hyprland monitor.

Computes the bounding box of all connected monitors, launches gamescope with
matching output/internal resolutions, forces its window onto the span and keeps
it there until the session ends. Talks to Hyprland through its control socket
using asyncio.
"""
