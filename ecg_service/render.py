"""Draw page geometry to a PNG with matplotlib."""
from __future__ import annotations

import io
from typing import Optional

import matplotlib
matplotlib.use("Agg")  # non-GUI backend
import matplotlib.pyplot as plt
from matplotlib.collections import LineCollection

from .models import Page, Panel

PANEL_HEIGHT_IN = 1.2
PAGE_WIDTH_IN = 12.5


def draw_panel(ax, panel: Panel):
    # Panel coordinates are y-down; flip the axis instead of the data.
    ax.set_xlim(0, 1)
    ax.set_ylim(1, 0)
    ax.set_xticks([])
    ax.set_yticks([])

    grid = [[(x, 0), (x, 1)] for x in panel.grid.vertical]
    grid += [[(0, y), (1, y)] for y in panel.grid.horizontal]
    ax.add_collection(LineCollection(grid, colors=(0, 0, 0, 0.1), linewidths=0.8))

    if panel.midline is not None:
        ax.axhline(panel.midline, color=(0, 0, 0, 0.25), linewidth=1)
    elif panel.polyline:
        xs, ys = zip(*panel.polyline)
        ax.plot(xs, ys, color=(0, 0, 0, 0.9), linewidth=1.0)

    for x in panel.markers:
        ax.axvline(x, color=(0.86, 0, 0, 0.85), linewidth=1)

    ax.text(0.006, 0.96, f"{panel.t_start_s}-{panel.t_end_s} s", transform=ax.transAxes,
            va="top", fontsize=8, color=(0, 0, 0, 0.65))


def render_page_png(page: Page, title: Optional[str] = None, dpi: int = 100) -> bytes:
    n = len(page.panels)
    fig, axes = plt.subplots(n, 1, figsize=(PAGE_WIDTH_IN, PANEL_HEIGHT_IN * n + 0.4), squeeze=False)
    try:
        for ax, panel in zip(axes[:, 0], page.panels):
            draw_panel(ax, panel)
        if title:
            fig.suptitle(title, fontsize=10, x=0.01, ha="left")
        fig.tight_layout()
        buf = io.BytesIO()
        fig.savefig(buf, format="png", dpi=dpi)
    finally:
        plt.close(fig)
    return buf.getvalue()
