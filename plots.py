import logging

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np

import terrain

logger = logging.getLogger(__name__)


def plot_depth_histogram(depth, thresholds, path, bins=100):
    """
    Saves a histogram of the finite depths in `depth` with the band edges
    drawn on top, colored like the bands they open.
    """
    values = np.asarray(depth, dtype=np.float64).reshape(-1)
    values = values[np.isfinite(values)]
    if len(values) == 0:
        logger.warning("No finite depths to plot.")
        return False

    ground = thresholds.ground_level
    grass_floor = ground - thresholds.range_below
    mountain_floor = grass_floor - thresholds.range_above

    fig, ax = plt.subplots(figsize=(8, 4))
    ax.hist(values, bins=bins, color="0.5")
    edges = [
        (ground, terrain.WATER, "ground"),
        (grass_floor, terrain.GRASS, "grass floor"),
        (mountain_floor, terrain.MOUNTAIN, "mountain floor"),
    ]
    for x, rgb, name in edges:
        if np.isfinite(x):
            ax.axvline(x, color=np.array(rgb) / 255.0, linewidth=2, label=f"{name} {x:.2f}m")
    ax.set_xlabel("Depth (m)")
    ax.set_ylabel("Pixels")
    ax.set_title("Depth distribution and band edges")
    ax.legend(loc="upper left")
    fig.tight_layout()
    fig.savefig(path)
    plt.close(fig)
    logger.info(f"Saved depth histogram to {path}")
    return True
