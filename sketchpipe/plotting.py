"""Bar charts of histogram query results."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sketchpipe.pipeline.quantiles import Histogram

logger = logging.getLogger(__name__)


def plot_histograms(histograms: list[Histogram], path: str | Path) -> None:
    """Render each histogram as one bar chart panel and save them as a PNG.

    Bars span their bucket edges; log histograms use a log-scaled x axis.
    """
    import matplotlib

    matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    fig, axes = plt.subplots(len(histograms), 1, figsize=(10, 4 * len(histograms)), squeeze=False)

    for ax, histogram in zip(axes[:, 0], histograms):
        lefts = histogram.edges[:-1]
        widths = [right - left for left, right in zip(histogram.edges, histogram.edges[1:])]
        ax.bar(lefts, histogram.counts, width=widths, align="edge", color="steelblue", edgecolor="white")
        if histogram.log_scale:
            ax.set_xscale("log")
        ax.set_title("Log Histogram" if histogram.log_scale else "Histogram")
        ax.set_xlabel("Value")
        ax.set_ylabel("Count")
        ax.grid(True, alpha=0.3)

    fig.tight_layout()
    fig.savefig(path, dpi=150)
    plt.close(fig)
    logger.info("Wrote histogram chart to %s", path)
